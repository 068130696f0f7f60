from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    login: str
    id: int = 0
    type: str = "User"


class Owner(BaseModel):
    login: str


class Repository(BaseModel):
    id: int
    name: str
    full_name: str
    url: str
    clone_url: str
    owner: Owner


class PullRequestHead(BaseModel):
    ref: str
    sha: str
    # None once the fork the PR was opened from is deleted
    repo: Repository | None = None


class PullRequest(BaseModel):
    number: int
    html_url: str
    title: str = ""
    body: str | None = None
    draft: bool = False
    user: User
    head: PullRequestHead


class Installation(BaseModel):
    id: int


class Sender(BaseModel):
    login: str
    id: int = 0
    type: str = "User"


class PreviousBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")


class Changes(BaseModel):
    body: PreviousBody | None = None


class PullRequestEvent(BaseModel):
    action: str
    pull_request: PullRequest
    repository: Repository
    installation: Installation
    sender: Sender
    changes: Changes | None = None


class Comment(BaseModel):
    id: int
    html_url: str
    body: str
    user: User


class IssuePullRequest(BaseModel):
    url: str


class Issue(BaseModel):
    number: int
    html_url: str
    title: str = ""
    body: str | None = None
    pull_request: IssuePullRequest | None = None


class IssueCommentEvent(BaseModel):
    action: str
    comment: Comment
    issue: Issue
    repository: Repository
    installation: Installation
    sender: Sender
    changes: Changes | None = None


class PullRequestFile(BaseModel):
    filename: str
    status: str


class OrgMembership(BaseModel):
    state: str
    role: str = "member"


class IssueCommentCreateRequest(BaseModel):
    body: str
