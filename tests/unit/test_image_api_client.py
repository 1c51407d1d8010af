"""
Tests for the task-based image API client, driven through httpx.MockTransport.
"""
from __future__ import annotations

import json

import httpx
import pytest

from filterchain.domain.errors import ExternalProviderError, ExternalProviderTimeout
from filterchain.infrastructure.ai.image_api_client import (
    GENERATE_PATH,
    RECORD_INFO_PATH,
    GenerationTask,
    ImageApiClient,
    TaskState,
)

RESULT_URL = "https://cdn.example.com/out.png"


def _client(handler, **kwargs) -> ImageApiClient:
    kwargs.setdefault("max_attempts", 5)
    return ImageApiClient(
        "test-key",
        "https://api.example.com",
        transport=httpx.MockTransport(handler),
        sleep=lambda _: None,
        **kwargs,
    )


def _provider(statuses, *, data_for_success=None, seen=None):
    """Build a handler answering submit, a sequence of status polls, and the download."""
    pending = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path == GENERATE_PATH:
            return httpx.Response(200, json={"code": 200, "data": {"taskId": "t-1"}})
        if request.url.path == RECORD_INFO_PATH:
            status = pending.pop(0) if pending else "GENERATING"
            if isinstance(status, httpx.Response):
                return status
            data = {"status": status}
            if status == "SUCCESS":
                data.update(data_for_success or {"response": {"resultUrls": [RESULT_URL]}})
            return httpx.Response(200, json={"data": data})
        if str(request.url) == RESULT_URL:
            return httpx.Response(200, content=b"image-bytes")
        return httpx.Response(404)

    return handler


class TestImageApiClient:
    def test_generate_polls_until_success(self):
        seen: list[httpx.Request] = []
        client = _client(_provider(["GENERATING", "GENERATING", "SUCCESS"], seen=seen))

        assert client.generate("a lighthouse") == b"image-bytes"

        submit = seen[0]
        assert submit.headers["Authorization"] == "Bearer test-key"
        assert json.loads(submit.content)["prompt"] == "a lighthouse"
        polls = [r for r in seen if r.url.path == RECORD_INFO_PATH]
        assert len(polls) == 3
        assert polls[0].url.params["taskId"] == "t-1"

    def test_result_url_falls_back_to_images(self):
        client = _client(_provider(["SUCCESS"], data_for_success={"images": [RESULT_URL]}))
        assert client.generate("x") == b"image-bytes"

    def test_failed_task_raises_with_provider_message(self):
        client = _client(_provider(["GENERATE_FAILED"]))
        with pytest.raises(ExternalProviderError, match="GENERATE_FAILED"):
            client.generate("x")

    def test_timeout_after_max_attempts(self):
        sleeps: list[float] = []
        client = ImageApiClient(
            "test-key",
            "https://api.example.com",
            max_attempts=3,
            poll_interval=2.0,
            transport=httpx.MockTransport(_provider([])),
            sleep=sleeps.append,
        )
        with pytest.raises(ExternalProviderTimeout):
            client.generate("x")
        assert sleeps == [2.0, 2.0, 2.0]

    def test_error_status_during_polling_counts_as_attempt(self):
        client = _client(_provider([httpx.Response(500, text="busy"), "SUCCESS"]))
        task = GenerationTask(task_id="t-1")

        client.poll(task)
        assert task.state is TaskState.POLLING
        assert task.attempts == 1

        client.poll(task)
        assert task.state is TaskState.SUCCEEDED
        assert task.result_url == RESULT_URL

    def test_terminal_task_is_not_polled_again(self):
        calls: list[httpx.Request] = []
        client = _client(_provider([], seen=calls))
        task = GenerationTask(task_id="t-1", state=TaskState.SUCCEEDED, result_url=RESULT_URL)
        assert client.poll(task) is task
        assert calls == []

    def test_success_without_url_is_an_error(self):
        client = _client(_provider(["SUCCESS"], data_for_success={"response": {}}))
        with pytest.raises(ExternalProviderError, match="without a result URL"):
            client.generate("x")

    def test_submit_error_status(self):
        client = _client(lambda request: httpx.Response(401, text="unauthorized"))
        with pytest.raises(ExternalProviderError, match="401"):
            client.generate("x")

    def test_malformed_json(self):
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ExternalProviderError, match="Malformed JSON"):
            client.generate("x")

    def test_missing_task_id(self):
        client = _client(lambda request: httpx.Response(200, json={"data": {}}))
        with pytest.raises(ExternalProviderError, match="taskId"):
            client.generate("x")

    def test_missing_api_key(self):
        client = ImageApiClient(None, transport=httpx.MockTransport(_provider(["SUCCESS"])))
        with pytest.raises(ExternalProviderError, match="IMAGE_API_KEY"):
            client.generate("x")

    def test_transport_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ExternalProviderError, match="refused"):
            _client(handler).generate("x")

    def test_edit_sends_image_inline_without_imgbb_key(self):
        seen: list[httpx.Request] = []
        client = _client(_provider(["SUCCESS"], seen=seen))

        assert client.edit(b"\xff\xd8jpeg", "make it winter") == b"image-bytes"

        payload = json.loads(seen[0].content)
        assert payload["prompt"] == "make it winter"
        assert payload["filesUrl"][0].startswith("data:image/jpeg;base64,")

    def test_edit_uses_imgbb_url_when_configured(self):
        seen: list[httpx.Request] = []
        inner = _provider(["SUCCESS"], seen=seen)

        def handler(request):
            if request.url.host == "api.imgbb.com":
                return httpx.Response(200, json={"data": {"url": "https://i.ibb.co/src.jpg"}})
            return inner(request)

        client = _client(handler, imgbb_api_key="bb-key")
        client.edit(b"jpeg", "sharpen")

        payload = json.loads(seen[0].content)
        assert payload["filesUrl"] == ["https://i.ibb.co/src.jpg"]
