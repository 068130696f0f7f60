import pytest
from http import HTTPStatus
from unittest.mock import AsyncMock, create_autospec

import gidgethub

import ci_trigger.github.utils as github
from ci_trigger.dispatch import DispatchOutcome, dispatch_triggers
from ci_trigger.models import ChangedFiles
from ci_trigger.trigger import parse_triggers
from tests.utils import make_pipeline, make_response_error, make_service_account


@pytest.fixture
def post_comment(monkeypatch):
    post_comment_mock = create_autospec(github.post_comment)
    monkeypatch.setattr(github, "post_comment", post_comment_mock)
    return post_comment_mock


async def dispatch(comment, cluster, context, config):
    return await dispatch_triggers(
        parse_triggers(comment),
        context=context,
        changed_files=ChangedFiles(added=["a.py"]),
        cluster=cluster,
        gh=AsyncMock(),
        config=config,
    )


@pytest.mark.asyncio
async def test_one_created_one_skipped(cluster, context, config, post_comment):
    cluster.pipelines[("tekton-pipelines", "build-and-publish")] = make_pipeline(
        "build-and-publish", "tekton-pipelines", params=["PRIVATE_NETWORK"]
    )
    cluster.service_accounts[("tekton-pipelines", "default")] = make_service_account(
        "default", "tekton-pipelines"
    )

    results = await dispatch(
        "/run build-and-publish PRIVATE_NETWORK=true\n/run bogus-pipeline",
        cluster,
        context,
        config,
    )

    assert [r.outcome for r in results] == [
        DispatchOutcome.created,
        DispatchOutcome.pipeline_not_found,
    ]
    cluster.create_pipeline_run.assert_called_once()
    namespace, manifest = cluster.create_pipeline_run.call_args.args
    assert namespace == "tekton-pipelines"
    assert manifest["spec"]["pipelineRef"] == {"name": "build-and-publish"}
    assert {"name": "PRIVATE_NETWORK", "value": "true"} in manifest["spec"]["params"]
    assert {"name": "PR_FILES_ADDED", "value": "a.py"} in manifest["spec"]["params"]
    assert results[0].pipeline_run.service_account_name == "default"
    post_comment.assert_not_called()


@pytest.mark.asyncio
async def test_failure_does_not_roll_back_earlier_trigger(
    cluster, context, config, post_comment
):
    cluster.pipelines[("test_repo", "build")] = make_pipeline("build", "test_repo")
    cluster.service_accounts[("test_repo", "build")] = make_service_account(
        "build", "test_repo"
    )

    results = await dispatch("/run build\n/run build FOO=1", cluster, context, config)

    assert [r.outcome for r in results] == [
        DispatchOutcome.created,
        DispatchOutcome.unknown_arguments,
    ]
    cluster.create_pipeline_run.assert_called_once()


@pytest.mark.asyncio
async def test_unknown_arguments_reported_and_not_built(
    cluster, context, config, post_comment, monkeypatch
):
    import ci_trigger.dispatch as dispatch_module

    build_mock = create_autospec(dispatch_module.build_pipeline_run)
    monkeypatch.setattr(dispatch_module, "build_pipeline_run", build_mock)

    cluster.pipelines[("test_repo", "build")] = make_pipeline(
        "build", "test_repo", params=["KNOWN"]
    )
    cluster.service_accounts[("test_repo", "default")] = make_service_account(
        "default", "test_repo"
    )

    (result,) = await dispatch("/run build KNOWN=1 FOO=1", cluster, context, config)

    assert result.outcome == DispatchOutcome.unknown_arguments
    build_mock.assert_not_called()
    cluster.create_pipeline_run.assert_not_called()
    post_comment.assert_called_once()
    body = post_comment.call_args.args[2]
    assert "`/run build KNOWN=1 FOO=1` contains unknown arguments" in body
    assert "- `FOO`" in body
    assert "KNOWN" not in body.split("arguments:")[1]


@pytest.mark.asyncio
async def test_unknown_arguments_comment_failure_is_logged(
    cluster, context, config, post_comment
):
    post_comment.side_effect = gidgethub.BadRequest(HTTPStatus.FORBIDDEN)
    cluster.pipelines[("test_repo", "build")] = make_pipeline("build", "test_repo")
    cluster.service_accounts[("test_repo", "default")] = make_service_account(
        "default", "test_repo"
    )

    (result,) = await dispatch("/run build FOO=1", cluster, context, config)

    assert result.outcome == DispatchOutcome.unknown_arguments


@pytest.mark.asyncio
async def test_service_account_missing_skips(cluster, context, config, post_comment):
    cluster.pipelines[("test_repo", "build")] = make_pipeline("build", "test_repo")

    (result,) = await dispatch("/run build", cluster, context, config)

    assert result.outcome == DispatchOutcome.service_account_not_found
    cluster.create_pipeline_run.assert_not_called()


@pytest.mark.asyncio
async def test_requested_namespace_does_not_fall_back(
    cluster, context, config, post_comment
):
    cluster.pipelines[("test_repo", "build")] = make_pipeline(
        "build", "test_repo", params=["NAMESPACE"]
    )

    (result,) = await dispatch("/run build NAMESPACE=other", cluster, context, config)

    assert result.outcome == DispatchOutcome.pipeline_not_found
    cluster.get_pipeline.assert_called_once_with("build", "other")


@pytest.mark.asyncio
async def test_lookup_error_skips_trigger(cluster, context, config, post_comment):
    cluster.get_pipeline.side_effect = make_response_error(500)

    results = await dispatch("/run a\n/run b", cluster, context, config)

    assert [r.outcome for r in results] == [
        DispatchOutcome.lookup_failed,
        DispatchOutcome.lookup_failed,
    ]


@pytest.mark.asyncio
async def test_submission_failure_continues(cluster, context, config, post_comment):
    for name in ("a", "b"):
        cluster.pipelines[("test_repo", name)] = make_pipeline(name, "test_repo")
    cluster.service_accounts[("test_repo", "default")] = make_service_account(
        "default", "test_repo"
    )
    cluster.create_pipeline_run.side_effect = [
        make_response_error(422),
        {"metadata": {"name": "pr-test_repo-7-b-x1y2z"}},
    ]

    results = await dispatch("/run a\n/run b", cluster, context, config)

    assert [r.outcome for r in results] == [
        DispatchOutcome.submission_failed,
        DispatchOutcome.created,
    ]
    assert cluster.create_pipeline_run.call_count == 2


@pytest.mark.asyncio
async def test_arguments_do_not_leak_between_triggers(
    cluster, context, config, post_comment
):
    cluster.pipelines[("test_repo", "build")] = make_pipeline(
        "build", "test_repo", params=["PRIVATE_NETWORK"]
    )
    cluster.service_accounts[("test_repo", "default")] = make_service_account(
        "default", "test_repo"
    )

    first, second = await dispatch(
        "/run build PRIVATE_NETWORK=true\n/run build", cluster, context, config
    )

    assert first.pipeline_run.params["PRIVATE_NETWORK"] == "true"
    assert "PRIVATE_NETWORK" not in second.pipeline_run.params


@pytest.mark.asyncio
async def test_no_triggers(cluster, context, config, post_comment):
    assert await dispatch("nothing to see", cluster, context, config) == []
    cluster.get_pipeline.assert_not_called()
