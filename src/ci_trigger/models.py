import os

from pydantic import BaseModel, Field

from ci_trigger.github.models import IssueCommentEvent, PullRequestEvent


class ChangedFiles(BaseModel):
    added: list[str] = Field(default_factory=list)
    changed: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    def all_files(self) -> list[str]:
        return [*self.added, *self.changed, *self.removed]

    def add(self, filename: str, status: str) -> None:
        """Sort a file from the GitHub files API into its bucket by status."""
        if status == "added":
            self.added.append(filename)
        elif status == "removed":
            self.removed.append(filename)
        elif status in ("modified", "renamed", "changed"):
            self.changed.append(filename)
        # copied and unchanged files are not reported


class TriggerContext(BaseModel):
    """Pull request details every pipeline run receives as parameters."""

    URL: str = ""
    NUMBER: str = ""
    TITLE: str = ""
    BODY: str = ""
    GIT_REVISION: str = ""
    CLONE_URL: str = ""
    REPO_NAME: str = ""
    REPO_ORG: str = ""
    CHANGED_FILES: str = ""
    COMMENT: str = ""
    PREVIOUS_COMMENT: str = ""
    COMMENT_ID: str = ""
    COMMENT_URL: str = ""
    USER_LOGIN: str = ""
    USER_TYPE: str = ""
    USER_ID: str = ""

    def as_params(self) -> dict[str, str]:
        return self.model_dump()

    @classmethod
    def from_environment(cls) -> "TriggerContext":
        return cls(**{name: os.environ.get(name, "") for name in cls.model_fields})

    @classmethod
    def from_comment_event(cls, event: IssueCommentEvent) -> "TriggerContext":
        previous_comment = ""
        if event.changes is not None and event.changes.body is not None:
            previous_comment = event.changes.body.from_

        return cls(
            URL=event.issue.html_url,
            NUMBER=str(event.issue.number),
            TITLE=event.issue.title,
            BODY=event.issue.body or "",
            CLONE_URL=event.repository.clone_url,
            REPO_NAME=event.repository.name,
            REPO_ORG=event.repository.owner.login,
            COMMENT=event.comment.body,
            PREVIOUS_COMMENT=previous_comment,
            COMMENT_ID=str(event.comment.id),
            COMMENT_URL=event.comment.html_url,
            USER_LOGIN=event.comment.user.login,
            USER_TYPE=event.comment.user.type,
            USER_ID=str(event.comment.user.id),
        )

    @classmethod
    def from_pull_request_event(cls, event: PullRequestEvent) -> "TriggerContext":
        pr = event.pull_request
        previous_body = ""
        if event.changes is not None and event.changes.body is not None:
            previous_body = event.changes.body.from_

        return cls(
            URL=pr.html_url,
            NUMBER=str(pr.number),
            TITLE=pr.title,
            BODY=pr.body or "",
            GIT_REVISION=pr.head.sha,
            CLONE_URL=pr.head.repo.clone_url if pr.head.repo is not None else "",
            REPO_NAME=event.repository.name,
            REPO_ORG=event.repository.owner.login,
            COMMENT=pr.body or "",
            PREVIOUS_COMMENT=previous_body,
            USER_LOGIN=event.sender.login,
            USER_TYPE=event.sender.type,
            USER_ID=str(event.sender.id),
        )


class ObjectMeta(BaseModel):
    name: str
    namespace: str = ""
    annotations: dict[str, str] = Field(default_factory=dict)


class ParamSpec(BaseModel):
    name: str


class PipelineSpec(BaseModel):
    params: list[ParamSpec] = Field(default_factory=list)


class Pipeline(BaseModel):
    metadata: ObjectMeta
    spec: PipelineSpec = Field(default_factory=PipelineSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    @property
    def declared_parameter_names(self) -> set[str]:
        return {param.name for param in self.spec.params}


class ServiceAccount(BaseModel):
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name
