"""
Extraction of ``/run`` triggers from pull request comments.

Examples of trigger lines::

    /run build-and-publish
    /run test-cluster-create PRIVATE_NETWORK=true
    /run test-cluster-upgrade PRIVATE_NETWORK=false PREVIOUS_VERSION=1.2.6
    /run hold wait-for-tests
    /run help NAMESPACE=foo-bar test-cluster-create
"""

import re

from pydantic import BaseModel, ConfigDict, Field

# Pipeline name followed by any number of named runs (KEY=value ...) or
# positional runs (token ...)
TRIGGER_FORMAT = re.compile(
    r"^\s*/run (?P<pipeline>\S+)"
    r"(?: (?P<args>(?:[A-Z_]+=\S+ ?)*)| (?P<pos>(?:[A-Za-z0-9\-_]+ ?)*))*"
    r"(?:\r|\n|$)",
    re.IGNORECASE | re.MULTILINE,
)

NAMESPACE_ARG = "NAMESPACE"


class TriggerMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_text: str
    pipeline_name: str
    named_segment: str = ""
    positional_segment: str = ""


class Trigger(BaseModel):
    """A parsed ``/run`` line.

    Named and positional arguments are kept side by side rather than as
    one or the other: the argument group repeats, so a line such as
    ``/run help NAMESPACE=foo-bar test-cluster-create`` carries both.
    """

    model_config = ConfigDict(frozen=True)

    full_text: str
    pipeline_name: str
    named_args: dict[str, str] = Field(default_factory=dict)
    positional_args: list[str] = Field(default_factory=list)

    @property
    def requested_namespace(self) -> str:
        return self.named_args.get(NAMESPACE_ARG, "")


def find_trigger_matches(text: str) -> list[TriggerMatch]:
    """Return the raw match groups of every trigger line in ``text``."""
    return [
        TriggerMatch(
            full_text=match.group(0),
            pipeline_name=match.group("pipeline"),
            named_segment=match.group("args") or "",
            positional_segment=match.group("pos") or "",
        )
        for match in TRIGGER_FORMAT.finditer(text)
    ]


def classify_arguments(match: TriggerMatch) -> Trigger:
    named_args: dict[str, str] = {}
    positional_args: list[str] = []

    args = f"{match.named_segment} {match.positional_segment}".strip()
    for arg in args.split(" "):
        if arg == "":
            continue
        if "=" in arg:
            key, value = arg.split("=", 1)
            named_args[key] = value
        else:
            positional_args.append(arg)

    return Trigger(
        full_text=match.full_text,
        pipeline_name=match.pipeline_name,
        named_args=named_args,
        positional_args=positional_args,
    )


def parse_triggers(text: str) -> list[Trigger]:
    return [classify_arguments(match) for match in find_trigger_matches(text)]
