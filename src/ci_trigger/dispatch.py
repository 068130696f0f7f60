from enum import StrEnum

import aiohttp
import gidgethub
from gidgethub.abc import GitHubAPI
from pydantic import BaseModel
from sanic.log import logger

from ci_trigger import metrics
from ci_trigger.config import Config
from ci_trigger.exceptions import (
    PipelineNotFoundError,
    ServiceAccountNotFoundError,
    UnknownArgumentsError,
)
from ci_trigger.kubernetes import Kubernetes
from ci_trigger.models import ChangedFiles, TriggerContext
from ci_trigger.params import bind_parameters, format_unknown_arguments_comment
from ci_trigger.pipeline_run import PipelineRun, build_pipeline_run
from ci_trigger.resolver import resolve_pipeline, resolve_service_account
from ci_trigger.trigger import Trigger
import ci_trigger.github.utils as github_utils


class DispatchOutcome(StrEnum):
    created = "created"
    pipeline_not_found = "pipeline_not_found"
    service_account_not_found = "service_account_not_found"
    unknown_arguments = "unknown_arguments"
    lookup_failed = "lookup_failed"
    submission_failed = "submission_failed"


class DispatchResult(BaseModel):
    trigger: Trigger
    outcome: DispatchOutcome
    message: str = ""
    pipeline_run: PipelineRun | None = None


async def dispatch_trigger(
    trigger: Trigger,
    *,
    context: TriggerContext,
    changed_files: ChangedFiles,
    cluster: Kubernetes,
    gh: GitHubAPI,
    config: Config,
) -> DispatchResult:
    """Resolve, validate and submit a single trigger.

    Trigger scoped failures are returned as a result instead of raised so
    that the remaining triggers of the same comment still run.
    """
    try:
        pipeline, namespace = await resolve_pipeline(
            cluster,
            trigger.pipeline_name,
            trigger.requested_namespace,
            context.REPO_NAME,
            config.DEFAULT_NAMESPACE,
        )
    except PipelineNotFoundError as e:
        logger.warning("Failed to find pipeline '%s', skipping", trigger.pipeline_name)
        return DispatchResult(
            trigger=trigger, outcome=DispatchOutcome.pipeline_not_found, message=str(e)
        )
    except aiohttp.ClientError as e:
        logger.error("Failed to look up pipeline '%s': %s", trigger.pipeline_name, e)
        return DispatchResult(
            trigger=trigger, outcome=DispatchOutcome.lookup_failed, message=str(e)
        )
    logger.info("Found Pipeline '%s' in namespace '%s'", pipeline.name, namespace)

    # The service account is conventionally named after the pipeline
    try:
        service_account = await resolve_service_account(
            cluster, trigger.pipeline_name, namespace
        )
    except ServiceAccountNotFoundError as e:
        logger.warning("Failed to find ServiceAccount, skipping")
        return DispatchResult(
            trigger=trigger,
            outcome=DispatchOutcome.service_account_not_found,
            message=str(e),
        )
    except aiohttp.ClientError as e:
        logger.error("Failed to look up ServiceAccount: %s", e)
        return DispatchResult(
            trigger=trigger, outcome=DispatchOutcome.lookup_failed, message=str(e)
        )
    logger.info(
        "Using ServiceAccount '%s' in namespace '%s'", service_account.name, namespace
    )

    bound = bind_parameters(trigger, pipeline, context.as_params())
    try:
        bound.raise_for_unknown()
    except UnknownArgumentsError as e:
        logger.warning(
            "Trigger %s has unknown arguments: %s",
            trigger.full_text.strip(),
            e.unknown_args,
        )
        try:
            await github_utils.post_comment(
                gh,
                context,
                format_unknown_arguments_comment(trigger, e.unknown_args),
                config=config,
            )
        except gidgethub.GitHubException as comment_error:
            logger.error("Failed to add PR comment: %s", comment_error)
        return DispatchResult(
            trigger=trigger, outcome=DispatchOutcome.unknown_arguments, message=str(e)
        )

    pipeline_run = build_pipeline_run(
        pipeline,
        namespace,
        service_account,
        bound.params,
        changed_files,
        context,
        config,
    )

    logger.info("Creating new PipelineRun - %s", trigger.pipeline_name)
    try:
        await cluster.create_pipeline_run(namespace, pipeline_run.to_manifest())
    except aiohttp.ClientError as e:
        logger.error("Failed to create new PipelineRun: %s", e)
        return DispatchResult(
            trigger=trigger,
            outcome=DispatchOutcome.submission_failed,
            message=str(e),
            pipeline_run=pipeline_run,
        )

    return DispatchResult(
        trigger=trigger, outcome=DispatchOutcome.created, pipeline_run=pipeline_run
    )


async def dispatch_triggers(
    triggers: list[Trigger],
    *,
    context: TriggerContext,
    changed_files: ChangedFiles,
    cluster: Kubernetes,
    gh: GitHubAPI,
    config: Config,
) -> list[DispatchResult]:
    results = []
    for trigger in triggers:
        result = await dispatch_trigger(
            trigger,
            context=context,
            changed_files=changed_files,
            cluster=cluster,
            gh=gh,
            config=config,
        )
        metrics.triggers_processed_total.labels(result.outcome.value).inc()
        results.append(result)
    return results
