from filterchain.application.use_cases.apply_filter import convert_parameters


def test_whole_numbers_become_float():
    out = convert_parameters({"level": "3"})
    assert out["level"] == 3.0
    assert isinstance(out["level"], float)


def test_decimal_and_text_values():
    assert convert_parameters({"level": "3.5", "direction": "vertical"}) == {
        "level": 3.5,
        "direction": "vertical",
    }


def test_non_string_values_pass_through():
    out = convert_parameters({"radius": 2, "k": 1.5})
    assert out == {"radius": 2, "k": 1.5}
    assert isinstance(out["radius"], int)


def test_empty():
    assert convert_parameters({}) == {}


def test_non_finite_values_stay_text():
    assert convert_parameters({"a": "nan", "b": "inf", "c": "-Infinity"}) == {
        "a": "nan",
        "b": "inf",
        "c": "-Infinity",
    }
    assert convert_parameters({"level": float("nan")}) == {"level": "nan"}
