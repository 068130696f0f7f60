from sanic.log import logger

from ci_trigger.exceptions import (
    PipelineNotFoundError,
    PipelineNotInRequestedNamespaceError,
    ServiceAccountNotFoundError,
)
from ci_trigger.kubernetes import Kubernetes
from ci_trigger.models import Pipeline, ServiceAccount

DEFAULT_SERVICE_ACCOUNT = "default"


def pipeline_search_order(repo_namespace: str, default_namespace: str) -> list[str]:
    """Namespaces to look in when the user did not ask for one, in order."""
    return [ns for ns in (repo_namespace, default_namespace) if ns != ""]


async def resolve_pipeline(
    cluster: Kubernetes,
    pipeline_name: str,
    requested_namespace: str,
    repo_namespace: str,
    default_namespace: str,
) -> tuple[Pipeline, str]:
    if requested_namespace != "":
        # An explicitly requested namespace is the only place we look
        pipeline = await cluster.get_pipeline(pipeline_name, requested_namespace)
        if pipeline is None:
            raise PipelineNotInRequestedNamespaceError(
                f"Pipeline '{pipeline_name}' not found in requested namespace "
                f"'{requested_namespace}'"
            )
        return pipeline, requested_namespace

    for namespace in pipeline_search_order(repo_namespace, default_namespace):
        logger.debug("Looking for pipeline %s in %s", pipeline_name, namespace)
        pipeline = await cluster.get_pipeline(pipeline_name, namespace)
        if pipeline is not None:
            return pipeline, namespace

    raise PipelineNotFoundError(f"Pipeline with name '{pipeline_name}' not found")


async def resolve_service_account(
    cluster: Kubernetes, name: str, namespace: str
) -> ServiceAccount:
    candidates = [name]
    if name != DEFAULT_SERVICE_ACCOUNT:
        candidates.append(DEFAULT_SERVICE_ACCOUNT)

    for candidate in candidates:
        service_account = await cluster.get_service_account(candidate, namespace)
        if service_account is not None:
            return service_account
        logger.debug("ServiceAccount %s not found in %s", candidate, namespace)

    raise ServiceAccountNotFoundError(
        f"No ServiceAccount '{name}' or '{DEFAULT_SERVICE_ACCOUNT}' in '{namespace}'"
    )
