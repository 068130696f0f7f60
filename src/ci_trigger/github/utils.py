import aiohttp
import gidgethub
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.abc import GitHubAPI
from gidgethub.apps import get_installation_access_token
from pydantic import ValidationError
from sanic.log import logger

from ci_trigger import metrics
from ci_trigger.config import Config
from ci_trigger.exceptions import PullRequestLookupError, UnauthorizedUserError
from ci_trigger.github.models import (
    IssueCommentCreateRequest,
    IssueCommentEvent,
    OrgMembership,
    PullRequest,
    PullRequestEvent,
    PullRequestFile,
)
from ci_trigger.kubernetes import Kubernetes
from ci_trigger.models import ChangedFiles, TriggerContext
from ci_trigger.trigger import parse_triggers
import ci_trigger.dispatch as dispatch

FILES_PER_PAGE = 100

DRAFT_PR_NOTE = (
    "> [!NOTE]\n"
    "> As this is a draft PR no triggers from the PR body will be handled.\n"
    "> \n"
    "> If you'd like to trigger them while draft please add them as a PR comment."
)


async def is_user_allowed(
    gh: GitHubAPI, login: str, user_id: str, user_type: str, config: Config
) -> bool:
    if user_type.lower() == "user" and login != "":
        try:
            data = await gh.getitem(f"/orgs/{config.ALLOW_ORG}/memberships/{login}")
        except gidgethub.GitHubException as e:
            logger.error("Failed to get org membership from GitHub: %s", e)
            return False
        membership = OrgMembership.model_validate(data)
        logger.debug("Membership of %s in %s: %s", login, config.ALLOW_ORG, membership.state)
        return membership.state == "active"

    if user_type.lower() == "bot" and user_id == config.ALLOWED_BOT_ID:
        logger.info("Allowing bot %s to trigger pipelines", login)
        return True

    return False


def _pull_url(context: TriggerContext) -> str:
    return f"/repos/{context.REPO_ORG}/{context.REPO_NAME}/pulls/{context.NUMBER}"


async def get_pull_request(gh: GitHubAPI, context: TriggerContext) -> PullRequest:
    try:
        data = await gh.getitem(_pull_url(context))
    except gidgethub.GitHubException as e:
        raise PullRequestLookupError(
            f"Failed to get PR details from GitHub API: {e}"
        ) from e
    try:
        return PullRequest.model_validate(data)
    except ValidationError as e:
        raise PullRequestLookupError(f"Unexpected PR details from GitHub API: {e}") from e


async def get_changed_files(gh: GitHubAPI, context: TriggerContext) -> ChangedFiles:
    changed_files = ChangedFiles()

    page = 1
    while True:
        try:
            files = await gh.getitem(
                f"{_pull_url(context)}/files?per_page={FILES_PER_PAGE}&page={page}"
            )
        except gidgethub.GitHubException as e:
            raise PullRequestLookupError(
                f"Failed to get changed files in PR from GitHub API: {e}"
            ) from e

        if len(files) == 0:
            break

        for item in files:
            file = PullRequestFile.model_validate(item)
            changed_files.add(file.filename, file.status)
        page += 1

    logger.debug(
        "PR has %d added, %d changed and %d removed files",
        len(changed_files.added),
        len(changed_files.changed),
        len(changed_files.removed),
    )
    return changed_files


async def post_comment(gh: GitHubAPI, context: TriggerContext, body: str, config: Config):
    url = f"/repos/{context.REPO_ORG}/{context.REPO_NAME}/issues/{context.NUMBER}/comments"
    logger.debug("Posting comment to %s", url)
    if not config.STERILE:
        await gh.post(url, data=IssueCommentCreateRequest(body=body).model_dump())


async def handle_triggers(
    gh: GitHubAPI,
    cluster: Kubernetes,
    context: TriggerContext,
    config: Config,
) -> list["dispatch.DispatchResult"]:
    """Run every ``/run`` trigger found in ``context.COMMENT``.

    Raises :class:`UnauthorizedUserError` before anything is parsed when the
    user may not trigger pipelines, and :class:`PullRequestLookupError` when
    the pull request cannot be read. Everything after that is trigger scoped.
    """
    logger.info(
        "Filtering PR comments for valid triggers. Repo = %s, PR = %s",
        context.REPO_NAME,
        context.NUMBER,
    )

    if context.COMMENT == "":
        logger.debug("No comment provided")
        return []

    if not await is_user_allowed(
        gh, context.USER_LOGIN, context.USER_ID, context.USER_TYPE, config
    ):
        metrics.trigger_runs_denied_total.inc()
        raise UnauthorizedUserError(
            "User not permitted to trigger pipelines. "
            f"User: {context.USER_LOGIN}, ID: {context.USER_ID}, Type: {context.USER_TYPE}"
        )

    triggers = parse_triggers(context.COMMENT)

    pr = await get_pull_request(gh, context)

    if len(triggers) == 0:
        logger.info("No triggers found, nothing to do")
        return []

    # Only noted when the description actually holds triggers
    if pr.draft and context.COMMENT_ID == "":
        logger.info("PR is draft and was triggered from the opening comment, not triggering")
        await post_comment(gh, context, DRAFT_PR_NOTE, config=config)
        return []

    if context.GIT_REVISION == "":
        # Comment events do not carry the PR head
        context = context.model_copy(update={"GIT_REVISION": pr.head.sha})
    changed_files = await get_changed_files(gh, context)

    results = await dispatch.dispatch_triggers(
        triggers,
        context=context,
        changed_files=changed_files,
        cluster=cluster,
        gh=gh,
        config=config,
    )
    logger.info("All triggers processed")
    return results


async def handle_comment(
    gh: GitHubAPI,
    cluster: Kubernetes,
    event: IssueCommentEvent,
    config: Config,
):
    """Handle pull request comment events"""
    logger.debug("Handling comment event")
    if event.action not in ("created", "edited"):
        logger.debug("Ignoring comment action: %s", event.action)
        return

    # GitHub sends PR comments as issue_comment events
    if event.issue.pull_request is None:
        logger.debug("Comment is not on a PR, ignoring")
        return

    context = TriggerContext.from_comment_event(event)
    return await handle_triggers(gh, cluster, context, config)


async def handle_pull_request(
    gh: GitHubAPI,
    cluster: Kubernetes,
    event: PullRequestEvent,
    config: Config,
):
    """Handle triggers written into the pull request description"""
    logger.debug("Handling pull_request event")
    if event.action not in ("opened", "edited", "reopened"):
        logger.debug("Ignoring pull_request action: %s", event.action)
        return

    context = TriggerContext.from_pull_request_event(event)
    return await handle_triggers(gh, cluster, context, config)


async def client_for_installation(app, installation_id, session: aiohttp.ClientSession):
    config: Config = app.ctx.config
    gh_pre = gh_aiohttp.GitHubAPI(session, __name__)
    access_token_response = await get_installation_access_token(
        gh_pre,
        installation_id=installation_id,
        app_id=str(config.APP_ID),
        private_key=config.PRIVATE_KEY,
    )

    token = access_token_response["token"]

    return gh_aiohttp.GitHubAPI(
        session,
        __name__,
        oauth_token=token,
        cache=app.ctx.cache,
    )
