import json
import os

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from ci_trigger.models import (
    ObjectMeta,
    ParamSpec,
    Pipeline,
    PipelineSpec,
    ServiceAccount,
)


def load_sample_data(filename):
    with open(os.path.join(os.path.dirname(__file__), "samples", filename)) as f:
        return json.load(f)


def make_pipeline(name, namespace, params=(), annotations=None):
    return Pipeline(
        metadata=ObjectMeta(
            name=name, namespace=namespace, annotations=annotations or {}
        ),
        spec=PipelineSpec(params=[ParamSpec(name=p) for p in params]),
    )


def make_service_account(name, namespace):
    return ServiceAccount(metadata=ObjectMeta(name=name, namespace=namespace))


def make_response_error(status, url="https://cluster.example/apis"):
    request_info = aiohttp.RequestInfo(
        url=URL(url),
        method="GET",
        headers=CIMultiDictProxy(CIMultiDict()),
        real_url=URL(url),
    )
    return aiohttp.ClientResponseError(
        request_info=request_info, history=(), status=status, message="error"
    )
