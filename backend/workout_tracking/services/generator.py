"""
Client for the external workout instance generator.

The generator is an untrusted collaborator: whatever it returns is run
through ``GeneratedWorkout`` and the payload builder before it is stored.
"""
from __future__ import annotations
import logging
from typing import Any, Protocol

import httpx

from workout_tracking.errors import GeneratorError
from workout_tracking.settings import get_settings

logger = logging.getLogger(__name__)


class WorkoutGenerator(Protocol):
    def generate(self, user_id: str, constraints: dict[str, Any]) -> dict[str, Any]:
        ...


class HttpWorkoutGenerator:
    def __init__(self, base_url: str = "", timeout: float | None = None):
        settings = get_settings()
        base_url = base_url or settings.GENERATOR_URL
        if not base_url.startswith("http"):
            base_url = "https://" + base_url
        self.url = base_url
        self.timeout = timeout if timeout is not None else settings.GENERATOR_TIMEOUT_SECONDS

    def generate(self, user_id: str, constraints: dict[str, Any]) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json={"user_id": user_id, "constraints": constraints})
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("generator returned %s: %s", e.response.status_code, e.response.text[:200])
            raise GeneratorError(f"Workout generator error ({e.response.status_code})") from e
        except httpx.RequestError as e:
            logger.error("generator request failed: %s", e)
            raise GeneratorError("Workout generator unavailable") from e
        except ValueError as e:
            raise GeneratorError("Workout generator returned invalid JSON") from e

        if not isinstance(body, dict):
            raise GeneratorError("Workout generator returned an unexpected shape")
        # some deployments wrap the instance
        instance = body.get("instance", body)
        return instance if isinstance(instance, dict) else {}


def get_generator() -> WorkoutGenerator:
    return HttpWorkoutGenerator()
