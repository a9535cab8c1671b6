"""Data models shared by the lexer, the parser and the generators.

The lexer turns diagram text into tokens, the parser folds the tokens into
a DiagramAst. Generated OpenAPI documents are plain dicts.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ParticipantToken(BaseModel):
    """`participant <name>` declaration."""

    type: Literal["participant"] = "participant"
    name: str
    line: int = 0


class RequestToken(BaseModel):
    """`SRC ->> TGT: METHOD PATH [summary]` arrow."""

    type: Literal["request"] = "request"
    source: str = ""
    target: str = ""
    method: str = ""  # lowercase
    path: str = ""
    summary: str | None = None
    line: int = 0


class ResponseToken(BaseModel):
    """`SRC -->> TGT: STATUS [description]` arrow."""

    type: Literal["response"] = "response"
    source: str = ""
    target: str = ""
    status: str = ""
    description: str | None = None
    line: int = 0


class NoteToken(BaseModel):
    """`Note over P1,P2: content` annotation."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["note"] = "note"
    participants: list[str] = []
    content: str = ""
    note_type: Literal["body", "info"] = Field(default="info", alias="noteType")
    line: int = 0


Token = Annotated[
    Union[ParticipantToken, RequestToken, ResponseToken, NoteToken],
    Field(discriminator="type"),
]


class ResponseInfo(BaseModel):
    status: str
    description: str | None = None


class ExternalDocs(BaseModel):
    url: str | None = None
    description: str | None = None


class Interaction(BaseModel):
    """One request, optionally paired with the response that answered it."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    method: str
    path: str
    line: int
    response: ResponseInfo | None = None
    body: Any = None
    summary: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    deprecated: bool | None = None
    external_docs: ExternalDocs | None = Field(default=None, alias="externalDocs")
    request_media_type: str | None = Field(default=None, alias="requestMediaType")
    response_media_type: str | None = Field(default=None, alias="responseMediaType")
    security: list[str] | None = None


class Diagnostic(BaseModel):
    """A parser finding, reported inline instead of raised."""

    type: Literal["warning", "error"]
    line: int
    message: str


class DiagramAst(BaseModel):
    participants: list[str] = []
    interactions: list[Interaction] = []
    notes: list[Diagnostic] = []
