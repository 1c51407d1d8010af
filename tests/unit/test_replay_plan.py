from filterchain.domain.entities.applied_filter import AppliedFilter, replay_plan


def test_plain_chain_replays_from_root():
    chain = [AppliedFilter("invert"), AppliedFilter("sepia")]
    assert replay_plan("/u/a.png", chain) == ("/u/a.png", chain)


def test_newest_ai_result_is_the_starting_point():
    first = AppliedFilter("AI Edit", {"command": "a", "result_path": "/u/a_ai_1.png"})
    second = AppliedFilter("AI Edit", {"command": "b", "result_path": "/u/a_ai_2.png"})
    chain = [AppliedFilter("invert"), first, AppliedFilter("sepia"), second, AppliedFilter("blur")]

    assert replay_plan("/u/a.png", chain) == ("/u/a_ai_2.png", [AppliedFilter("blur")])


def test_ai_entry_without_result_is_not_a_starting_point():
    legacy = AppliedFilter("AI Edit", {"command": "a"})
    assert legacy.replay_base is None
    assert replay_plan("/u/a.png", [legacy]) == ("/u/a.png", [legacy])
