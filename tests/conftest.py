"""Shared pytest fixtures for template-sync tests."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from template_sync.config import Config
from template_sync.config_schema import CollectionConfig, SyncSettings
from template_sync.core.models import TemplateBundle
from template_sync.errors import RemoteUnavailableError
from template_sync.reconcile.context import ReconcileContext

load_dotenv()


class FakeRemoteStore:
    """In-memory remote store recording every call."""

    def __init__(self, templates=None, failing=None):
        self.templates: dict[str, TemplateBundle] = dict(templates or {})
        self.failing: set[str] = set(failing or ())
        self.fetched: list[str] = []
        self.published: list[tuple[str, TemplateBundle]] = []

    def fetch(self, artifact_id):
        self.fetched.append(artifact_id)
        if artifact_id in self.failing or artifact_id not in self.templates:
            raise RemoteUnavailableError(
                "API error: 404", artifact_id=artifact_id, status=404
            )
        return self.templates[artifact_id]

    def publish(self, artifact_id, bundle):
        if artifact_id in self.failing:
            raise RemoteUnavailableError(
                "API error: 500", artifact_id=artifact_id, status=500
            )
        self.published.append((artifact_id, bundle))
        self.templates[artifact_id] = bundle
        return bundle


def make_bundle(template_id="tmpl-1", html="<h1>Hello</h1>", css="h1 { color: red; }", **extra):
    """Build a ``TemplateBundle`` with sensible defaults."""
    fields = {
        "id": template_id,
        "name": f"Template {template_id}",
        "html": html,
        "css": css,
        "networkId": "net-1",
        "publisherId": "pub-1",
        "creativeAssetGroupId": "cag-1",
        "notes": {},
    }
    fields.update(extra)
    return TemplateBundle(**fields)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        api_url="https://api.example.com/v1",
        token="test-token",
        insecure=False,
    )


@pytest.fixture
def settings():
    return SyncSettings()


@pytest.fixture
def bundle():
    return make_bundle()


@pytest.fixture
def remote(bundle):
    return FakeRemoteStore({bundle.id: bundle})


@pytest.fixture
def make_context(tmp_path: Path, settings):
    """Factory fixture building a ``ReconcileContext`` rooted in tmp_path."""

    def _make(remote, collections=None, **overrides):
        sync_settings = settings.model_copy(update=overrides) if overrides else settings
        return ReconcileContext.create(
            sync_settings,
            remote,
            base_dir=tmp_path,
            collections={
                key: CollectionConfig(**value) if isinstance(value, dict) else value
                for key, value in (collections or {}).items()
            },
        )

    return _make


@pytest.fixture
def context(make_context, remote):
    return make_context(remote)


@pytest.fixture
def bundle_factory():
    return make_bundle


@pytest.fixture
def remote_factory():
    return FakeRemoteStore
