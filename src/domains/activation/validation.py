# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""External student validation.

The external authority confirms that a matricule belongs to the named
student. The call sits outside any database transaction: when it fails
the activation stops and nothing is written, so the attempt can simply
be repeated later (or the account activated manually).

Each attempt has its own timeout. Transport errors and 5xx responses are
retried with exponential backoff; 4xx responses are final.

Example:
    >>> async with httpx.AsyncClient() as http:
    ...     client = StudentValidatorClient(http, settings.validation)
    ...     outcome = await client.validate("E123", "Jean", "Dupont")
    ...     outcome.ok
    True
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config.settings import StudentValidationSettings

logger = logging.getLogger(__name__)

GENERIC_REJECTION = "Unknown validation API error"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating a student.

    Attributes:
        ok: Whether the student was confirmed.
        reason: Rejection reason when not ok.
    """

    ok: bool
    reason: str | None = None

    @classmethod
    def accepted(cls) -> "ValidationOutcome":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationOutcome":
        return cls(ok=False, reason=reason)


class _ServerSideError(Exception):
    """5xx response, eligible for retry."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class StudentValidatorClient:
    """HTTP client for the external student validation endpoint.

    Attributes:
        _http: Shared httpx client, owned by the application lifespan.
        _settings: Endpoint, timeout and retry configuration.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: StudentValidationSettings,
    ) -> None:
        self._http = http_client
        self._settings = settings

    async def validate(
        self,
        matricule: str,
        first_name: str,
        last_name: str,
    ) -> ValidationOutcome:
        """Ask the external authority to confirm a student.

        Never raises: every failure is reported as a rejection.

        Args:
            matricule: Institutional student identifier.
            first_name: Student first name.
            last_name: Student last name.

        Returns:
            ValidationOutcome, ok only for a 2xx response.
        """
        payload = {
            "studentId": matricule,
            "firstName": first_name,
            "lastName": last_name,
        }

        try:
            response = await self._post_with_retry(payload)
        except _ServerSideError as e:
            response = e.response
        except httpx.TimeoutException as e:
            logger.error("Student validation timed out for %s: %s", matricule, e)
            return ValidationOutcome.rejected("Validation service did not respond in time")
        except httpx.HTTPError as e:
            logger.error("Student validation request failed for %s: %s", matricule, e)
            return ValidationOutcome.rejected(f"Validation service unreachable: {e}")

        if response.is_success:
            logger.info("Student validated: matricule=%s", matricule)
            return ValidationOutcome.accepted()

        return self._rejection_from(response, matricule)

    async def _post_with_retry(self, payload: dict[str, str]) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self._settings.max_attempts)),
            wait=wait_exponential(
                min=self._settings.backoff_min,
                max=self._settings.backoff_max,
            ),
            retry=retry_if_exception_type((httpx.TransportError, _ServerSideError)),
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                response = await self._http.post(
                    self._settings.url,
                    json=payload,
                    timeout=self._settings.timeout,
                )
                if response.status_code >= 500:
                    logger.warning(
                        "Validation service returned %d (attempt %d)",
                        response.status_code,
                        attempt.retry_state.attempt_number,
                    )
                    raise _ServerSideError(response)
                return response

        raise RuntimeError("Retry loop exited without a result")

    @staticmethod
    def _rejection_from(response: httpx.Response, matricule: str) -> ValidationOutcome:
        try:
            body = response.json()
        except ValueError:
            logger.error(
                "Validation response was not JSON: status=%d, body=%s",
                response.status_code,
                response.text[:200],
            )
            return ValidationOutcome.rejected(
                f"Validation API returned an invalid response (status {response.status_code})"
            )

        message = body.get("message") if isinstance(body, dict) else None
        logger.warning(
            "Student validation rejected: matricule=%s, status=%d, message=%s",
            matricule,
            response.status_code,
            message,
        )
        return ValidationOutcome.rejected(message or GENERIC_REJECTION)


class ValidationStrategy(ABC):
    """Decides whether an activation needs external confirmation."""

    @property
    @abstractmethod
    def is_external(self) -> bool:
        """Whether this strategy calls the external authority."""

    @abstractmethod
    async def validate(
        self,
        matricule: str,
        first_name: str,
        last_name: str,
    ) -> ValidationOutcome:
        """Validate a student."""


class NoValidation(ValidationStrategy):
    """Accepts every student without any call."""

    @property
    def is_external(self) -> bool:
        return False

    async def validate(
        self,
        matricule: str,
        first_name: str,
        last_name: str,
    ) -> ValidationOutcome:
        return ValidationOutcome.accepted()


class ExternalValidation(ValidationStrategy):
    """Delegates to the external student validator."""

    def __init__(self, client: StudentValidatorClient) -> None:
        self._client = client

    @property
    def is_external(self) -> bool:
        return True

    async def validate(
        self,
        matricule: str,
        first_name: str,
        last_name: str,
    ) -> ValidationOutcome:
        return await self._client.validate(matricule, first_name, last_name)
