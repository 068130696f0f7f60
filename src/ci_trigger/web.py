from sanic import Sanic, response
import aiohttp
from gidgethub.sansio import Event as GitHubEvent
from gidgethub.apps import get_jwt
from gidgethub import aiohttp as gh_aiohttp
from sanic.log import logger
import cachetools
from aiolimiter import AsyncLimiter
import contextlib
import functools
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ci_trigger.config import Config
from ci_trigger.github.router import router as github_router
from ci_trigger.kubernetes import Kubernetes
import ci_trigger.github.utils as github_utils


def with_session(func):
    @functools.wraps(func)
    async def wrapper(
        *args, app: Sanic, session: aiohttp.ClientSession | None = None, **kwargs
    ):
        async with contextlib.AsyncExitStack() as stack:
            if session is None:
                session = await stack.enter_async_context(aiohttp.ClientSession())
            return await func(*args, app=app, session=session, **kwargs)

    return wrapper


@with_session
async def handle_github_webhook(request, *, app: Sanic, session: aiohttp.ClientSession):
    config: Config = app.ctx.config
    event = GitHubEvent.from_http(
        request.headers, request.body, secret=config.WEBHOOK_SECRET
    )

    assert "installation" in event.data
    installation_id = event.data["installation"]["id"]
    logger.debug("Installation id: %s", installation_id)

    gh = await github_utils.client_for_installation(
        app=app, installation_id=installation_id, session=session
    )

    cluster = Kubernetes(session=session, config=config)

    logger.debug("Dispatching event %s", event.event)
    await github_router.dispatch(event, gh=gh, app=app, cluster=cluster)


def create_app(config: Config | None = None):
    if config is None:
        config = Config()  # type: ignore[call-arg]

    app = Sanic("ci-trigger")
    app.ctx.config = config
    logger.setLevel(config.OVERRIDE_LOGGING)

    app.ctx.cache = cachetools.LRUCache(maxsize=500)

    limiter = AsyncLimiter(10)

    @app.listener("before_server_start")
    async def init(app, loop):
        config.print_config()
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

    @app.listener("after_server_stop")
    async def close(app, loop):
        await app.ctx.aiohttp_session.close()

    @app.route("/")
    async def index(request):
        logger.debug("status check")
        return response.text("ok")

    @app.route("/metrics")
    async def metrics(request):
        return response.raw(generate_latest(), content_type=CONTENT_TYPE_LATEST)

    @app.route("/health")
    async def health(request):
        if not limiter.has_capacity():
            return response.text("Rate limited", status=429)
        await limiter.acquire()

        gh = gh_aiohttp.GitHubAPI(app.ctx.aiohttp_session, __name__)

        github_ok = False
        cluster_ok = False

        logger.info("Checking health")
        try:
            token = get_jwt(app_id=config.APP_ID, private_key=config.PRIVATE_KEY)
            app_info = await gh.getitem("/app", jwt=token)
            if app_info is None:
                logger.error("GitHub App info is None")
            else:
                logger.info("GitHub ok")
                github_ok = True
        except Exception as e:
            logger.error("GitHub App info failed: %s", e)
            logger.exception(e)

        try:
            cluster = Kubernetes(session=app.ctx.aiohttp_session, config=config)
            cluster_ok = await cluster.is_reachable()
            if cluster_ok:
                logger.info("Kubernetes ok")
            else:
                logger.error("Kubernetes API not reachable")
        except Exception as e:
            logger.error("Kubernetes API check failed: %s", e)
            logger.exception(e)

        status = 200 if github_ok and cluster_ok else 500
        github_str = "ok" if github_ok else "not ok"
        cluster_str = "ok" if cluster_ok else "not ok"
        text = f"GitHub: {github_str}, Kubernetes: {cluster_str}"
        return response.text(text, status=status)

    @app.route("/webhook/github", methods=["POST"])
    async def github(request):
        logger.debug("Webhook received on github endpoint")

        app.add_task(handle_github_webhook(request, app=app))

        return response.empty(200)

    return app
