"""Client for the asynchronous GPT-4o image API.

Generation is task based: a request is submitted, the task is polled until it
reaches a terminal state, then the result is downloaded. Polling is modelled
as a small state machine so callers can drive it step by step::

    SUBMITTED -> POLLING -> SUCCEEDED | FAILED | TIMED_OUT

Usage:
    client = ImageApiClient(api_key="...")
    png = client.generate("a lighthouse at dusk")
    edited = client.edit(jpeg_bytes, "make it winter")
"""
from __future__ import annotations

import base64
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import httpx

from filterchain.domain.errors import ExternalProviderError, ExternalProviderTimeout

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/v1/gpt4o-image/generate"
RECORD_INFO_PATH = "/api/v1/gpt4o-image/record-info"
IMGBB_UPLOAD_URL = "https://api.imgbb.com/1/upload"

FAILED_STATUSES = {"CREATE_TASK_FAILED", "GENERATE_FAILED"}


class TaskState(str, Enum):
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


TERMINAL_STATES = {TaskState.SUCCEEDED, TaskState.FAILED, TaskState.TIMED_OUT}


@dataclass
class GenerationTask:
    task_id: str
    state: TaskState = TaskState.SUBMITTED
    attempts: int = 0
    result_url: str | None = None
    error: str | None = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES


def _base_payload(prompt: str) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "negative_prompt": "low quality, blurry, distorted",
        "width": 512,
        "height": 512,
        "aspect_ratio": "1:1",
        "samples": 1,
        "steps": 20,
        "safety_checker": True,
        "enhance_prompt": True,
        "seed": 0,
        "guidance_scale": 7.5,
        "webhook_url": "",
        "track_id": str(uuid.uuid4()),
        "model_type": "realistic",
    }


def _parse_json(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise ExternalProviderError(f"Malformed JSON from {response.url}: {exc}") from exc
    if not isinstance(body, dict):
        raise ExternalProviderError(f"Unexpected response shape from {response.url}")
    return body


def _result_url(data: dict[str, Any]) -> str | None:
    nested = data.get("response")
    urls = nested.get("resultUrls") if isinstance(nested, dict) else None
    if not urls:
        urls = data.get("images")
    if isinstance(urls, list) and urls and isinstance(urls[0], str):
        return urls[0]
    return None


class ImageApiClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://4oimageapiio.erweima.ai",
        *,
        imgbb_api_key: str | None = None,
        max_attempts: int = 30,
        poll_interval: float = 10.0,
        timeout: float = 180.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.imgbb_api_key = imgbb_api_key
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ImageApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # high level
    # ------------------------------------------------------------------
    def generate(self, prompt: str) -> bytes:
        task = self.wait(self.submit(_base_payload(prompt)))
        return self.download(task.result_url or "")

    def edit(self, image_bytes: bytes, command: str) -> bytes:
        payload = _base_payload(command)
        payload.update(
            {
                "filesUrl": [self._public_url(image_bytes)],
                "file_id": str(uuid.uuid4()),
                "adapter_type": "control",
                "adapter_id": str(uuid.uuid4()),
                "controlnet_conditioning_scale": 0.8,
            }
        )
        task = self.wait(self.submit(payload))
        return self.download(task.result_url or "")

    # ------------------------------------------------------------------
    # state machine
    # ------------------------------------------------------------------
    def submit(self, payload: dict[str, Any]) -> GenerationTask:
        response = self._request("POST", GENERATE_PATH, json=payload, headers=self._auth())
        if response.is_error:
            raise ExternalProviderError(
                f"Image API returned {response.status_code}: {response.text[:500]}"
            )
        data = _parse_json(response).get("data")
        task_id = data.get("taskId") if isinstance(data, dict) else None
        if not isinstance(task_id, str) or not task_id:
            raise ExternalProviderError("Image API response has no data.taskId")
        logger.info("Submitted image task %s", task_id)
        return GenerationTask(task_id=task_id)

    def poll(self, task: GenerationTask) -> GenerationTask:
        """Advance ``task`` by one polling step."""
        if task.done:
            return task
        if task.attempts >= self.max_attempts:
            task.state = TaskState.TIMED_OUT
            return task
        task.attempts += 1
        task.state = TaskState.POLLING

        response = self._request(
            "GET", RECORD_INFO_PATH, params={"taskId": task.task_id}, headers=self._auth()
        )
        if response.is_error:
            logger.warning(
                "Status check for %s failed with %s: %s",
                task.task_id,
                response.status_code,
                response.text[:200],
            )
            return task

        data = _parse_json(response).get("data")
        if not isinstance(data, dict):
            raise ExternalProviderError(f"Status response for {task.task_id} has no data")
        status = data.get("status")
        if status == "SUCCESS":
            url = _result_url(data)
            if url is None:
                raise ExternalProviderError(f"Task {task.task_id} succeeded without a result URL")
            task.state = TaskState.SUCCEEDED
            task.result_url = url
        elif status in FAILED_STATUSES:
            task.state = TaskState.FAILED
            task.error = str(data.get("errorMessage") or status)
        return task

    def wait(self, task: GenerationTask) -> GenerationTask:
        while True:
            self.poll(task)
            if task.state is TaskState.SUCCEEDED:
                return task
            if task.state is TaskState.FAILED:
                raise ExternalProviderError(f"Image generation failed: {task.error}")
            if task.state is TaskState.TIMED_OUT:
                raise ExternalProviderTimeout(
                    f"No result for task {task.task_id} after {task.attempts} attempts "
                    f"({task.attempts * self.poll_interval:.0f}s)"
                )
            self._sleep(self.poll_interval)

    def download(self, url: str) -> bytes:
        response = self._request("GET", url)
        if response.is_error:
            raise ExternalProviderError(f"Could not download {url}: {response.status_code}")
        return response.content

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _auth(self) -> dict[str, str]:
        if not self.api_key:
            raise ExternalProviderError("IMAGE_API_KEY is not configured")
        return {"Authorization": f"Bearer {self.api_key}"}

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ExternalProviderError(f"Request to {url} failed: {exc}") from exc

    def _public_url(self, image_bytes: bytes) -> str:
        """Give the provider a URL it can fetch the source image from."""
        if self.imgbb_api_key:
            try:
                response = self._request(
                    "POST",
                    IMGBB_UPLOAD_URL,
                    params={"key": self.imgbb_api_key},
                    files={"image": (f"{uuid.uuid4()}.jpg", image_bytes, "image/jpeg")},
                )
                if not response.is_error:
                    data = _parse_json(response).get("data")
                    if isinstance(data, dict):
                        url = data.get("url") or data.get("display_url")
                        if url:
                            return str(url)
                logger.warning("imgbb upload returned no URL (status %s)", response.status_code)
            except ExternalProviderError:
                logger.warning("imgbb upload failed, sending the image inline", exc_info=True)
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"
