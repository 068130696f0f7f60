import pytest
from unittest.mock import AsyncMock, create_autospec
from sanic import Sanic
from sanic_testing import TestManager
from sanic.log import logger

from ci_trigger.config import Config
from ci_trigger.kubernetes import Kubernetes
from ci_trigger.models import TriggerContext


@pytest.fixture
def config():
    config = Config(
        WEBHOOK_SECRET="abc",
        PRIVATE_KEY="abc",
        APP_ID=123,
        ALLOW_ORG="test_org",
        ALLOWED_BOT_ID="29139614",
        DEFAULT_NAMESPACE="tekton-pipelines",
        KUBE_API_URL="https://cluster.example",
        KUBE_TOKEN="token",
        OVERRIDE_LOGGING="DEBUG",
        STERILE=False,
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture(scope="function")
def app(config) -> Sanic:
    """Create a Sanic app for testing."""
    from ci_trigger.web import create_app

    Sanic.test_mode = True
    app = create_app(config=config)
    TestManager(app)
    return app


@pytest.fixture
def context():
    return TriggerContext(
        URL="https://github.com/test_org/test_repo/pull/7",
        NUMBER="7",
        TITLE="Add feature",
        BODY="",
        CLONE_URL="https://github.com/test_org/test_repo.git",
        REPO_NAME="test_repo",
        REPO_ORG="test_org",
        COMMENT="/run build-and-publish",
        COMMENT_ID="1001",
        COMMENT_URL="https://github.com/test_org/test_repo/pull/7#issuecomment-1001",
        USER_LOGIN="test_user",
        USER_TYPE="User",
        USER_ID="42",
    )


@pytest.fixture
def cluster():
    """A cluster client whose lookups are backed by in-memory objects."""
    cluster = create_autospec(Kubernetes, instance=True)
    cluster.pipelines = {}
    cluster.service_accounts = {}

    async def get_pipeline(name, namespace):
        return cluster.pipelines.get((namespace, name))

    async def get_service_account(name, namespace):
        return cluster.service_accounts.get((namespace, name))

    cluster.get_pipeline = AsyncMock(side_effect=get_pipeline)
    cluster.get_service_account = AsyncMock(side_effect=get_service_account)
    cluster.create_pipeline_run = AsyncMock(return_value={})
    return cluster
