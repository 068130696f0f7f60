from gidgethub.routing import Router
from sanic.log import logger
from sanic import Sanic
from gidgethub.abc import GitHubAPI
from gidgethub.sansio import Event
from typing import cast

from ci_trigger import metrics
import ci_trigger.github.utils as github_utils
from ci_trigger.github.models import (
    PullRequestEvent,
    IssueCommentEvent,
)
from ci_trigger.config import Config
from ci_trigger.exceptions import UnauthorizedUserError
from ci_trigger.kubernetes import Kubernetes

router = Router()


@router.register("ping")
async def on_ping(event: Event, gh: GitHubAPI, app: Sanic, cluster: Kubernetes):
    metrics.webhooks_received_total.labels("ping").inc()
    logger.debug("Received ping event")


@router.register("pull_request")
async def on_pr(
    event: Event,
    gh: GitHubAPI,
    app: Sanic,
    cluster: Kubernetes,
):
    metrics.webhooks_received_total.labels("pull_request").inc()
    data = PullRequestEvent.model_validate(event.data)
    logger.debug("Received pull_request event on PR #%d", data.pull_request.number)
    logger.debug("Action: %s", data.action)

    config = cast(Config, app.ctx.config)
    try:
        await github_utils.handle_pull_request(gh, cluster, data, config=config)
    except UnauthorizedUserError as e:
        logger.info("%s", e)


@router.register("issue_comment")
async def on_comment(
    event: Event,
    gh: GitHubAPI,
    app: Sanic,
    cluster: Kubernetes,
):
    metrics.webhooks_received_total.labels("issue_comment").inc()
    data = IssueCommentEvent.model_validate(event.data)
    logger.debug("Received issue_comment event")
    logger.debug("Action: %s", data.action)

    config = cast(Config, app.ctx.config)
    try:
        await github_utils.handle_comment(gh, cluster, data, config=config)
    except UnauthorizedUserError as e:
        logger.info("%s", e)
