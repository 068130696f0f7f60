from pydantic import BaseModel, Field

from ci_trigger.exceptions import UnknownArgumentsError
from ci_trigger.models import Pipeline
from ci_trigger.trigger import Trigger

POSITIONAL_ARGS_PARAM = "POS_ARGS"


class BoundParameters(BaseModel):
    params: dict[str, str] = Field(default_factory=dict)
    unknown_args: list[str] = Field(default_factory=list)

    def raise_for_unknown(self) -> None:
        if self.unknown_args:
            raise UnknownArgumentsError(self.unknown_args)


def bind_parameters(
    trigger: Trigger, pipeline: Pipeline, context: dict[str, str]
) -> BoundParameters:
    """Merge the trigger's named arguments into a copy of ``context``.

    Arguments the pipeline does not declare are collected in
    ``unknown_args`` instead. Positional arguments are passed through as a
    single comma separated ``POS_ARGS`` parameter.
    """
    params = dict(context)
    unknown_args = []

    declared = pipeline.declared_parameter_names
    for key, value in trigger.named_args.items():
        if key in declared:
            params[key] = value
        else:
            unknown_args.append(key)

    if trigger.positional_args:
        params[POSITIONAL_ARGS_PARAM] = ",".join(trigger.positional_args)

    return BoundParameters(params=params, unknown_args=unknown_args)


def format_unknown_arguments_comment(trigger: Trigger, unknown_args: list[str]) -> str:
    keys = "`\n- `".join(unknown_args)
    return (
        f":warning: Trigger `{trigger.full_text.strip()}` contains unknown arguments:\n"
        f"- `{keys}`"
    )
