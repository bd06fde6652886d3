"""HTTP client for the remote template store.

The reconciliation engine depends only on the ``RemoteStore`` protocol;
``TemplateClient`` is the production implementation.  The client never
retries; callers that need retries wrap it.
"""

import logging
import threading
from typing import Annotated, Any, Protocol, Union

import requests
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..config import Config
from ..errors import (
    AuthenticationError,
    MalformedResponseError,
    RemoteUnavailableError,
)
from ..validators import require_identifier
from .models import TemplateBundle

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    """What the reconciliation engine needs from the remote side."""

    def fetch(self, artifact_id: str) -> TemplateBundle:
        """Return the current remote content for *artifact_id*."""
        ...  # pragma: no cover

    def publish(
        self, artifact_id: str, bundle: TemplateBundle
    ) -> TemplateBundle:
        """Replace the remote content and return what the remote stored."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Response decoding
# ---------------------------------------------------------------------------


class _TemplateHolder(BaseModel):
    template: TemplateBundle


class _WrappedEnvelope(BaseModel):
    """``{"data": {"template": {...}}}``"""

    data: _TemplateHolder


class _DirectEnvelope(BaseModel):
    """``{"data": {...}}``"""

    data: TemplateBundle


_ENVELOPE = TypeAdapter(
    Annotated[
        Union[_WrappedEnvelope, _DirectEnvelope],
        Field(union_mode="left_to_right"),
    ]
)


def decode_template_response(raw: Any) -> TemplateBundle:
    """Decode either known response envelope into a ``TemplateBundle``.

    Raises:
        MalformedResponseError: If neither envelope shape matches.
    """
    try:
        envelope = _ENVELOPE.validate_python(raw)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Malformed template response: {exc.error_count()} validation error(s)"
        ) from exc

    match envelope:
        case _WrappedEnvelope(data=holder):
            return holder.template
        case _DirectEnvelope(data=bundle):
            return bundle
    raise MalformedResponseError("Malformed template response")  # pragma: no cover


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TemplateClient:
    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.base_url = config.api_url.rstrip("/")

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["Content-Type"] = "application/json"
        if self.config.token:
            session.headers["Authorization"] = f"Bearer {self.config.token}"
        session.verify = not self.config.insecure
        return session

    def _request(
        self,
        method: str,
        path: str,
        artifact_id: str,
        payload: dict | None = None,
    ) -> Any:
        """Send one request and return the parsed JSON body."""
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._get_session().request(
                method,
                url,
                json=payload,
                timeout=(10, self.config.timeout),
            )
        except requests.RequestException as exc:
            raise RemoteUnavailableError(
                f"Template API unreachable: {exc}", artifact_id=artifact_id
            ) from exc

        if response.status_code == 401:
            raise AuthenticationError(
                "Unauthorized", artifact_id=artifact_id, status=401
            )
        if not response.ok:
            raise RemoteUnavailableError(
                f"API error: {response.status_code}",
                artifact_id=artifact_id,
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Template API returned non-JSON body for {artifact_id}"
            ) from exc

    def fetch(self, artifact_id: str) -> TemplateBundle:
        """
        Get the current template by id.
        """
        require_identifier(artifact_id, "Template id")
        raw = self._request("GET", f"/templates/{artifact_id}", artifact_id)
        return decode_template_response(raw)

    def publish(
        self, artifact_id: str, bundle: TemplateBundle
    ) -> TemplateBundle:
        """
        Replace the remote template with *bundle* and return the stored copy.
        """
        require_identifier(artifact_id, "Template id")
        raw = self._request(
            "PUT",
            f"/templates/{artifact_id}",
            artifact_id,
            payload=bundle.to_payload(),
        )
        return decode_template_response(raw)
