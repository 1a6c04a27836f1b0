"""Models for validation issues and apply results."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Issue severity."""

    ERROR = "error"
    WARNING = "warning"


class Issue(BaseModel):
    """Problem detected in a manifest."""

    severity: Annotated[Severity, Field(description="Issue severity")]
    kind: Annotated[
        str | None, Field(default=None, description="Kind of the affected object")
    ]
    name: Annotated[
        str | None, Field(default=None, description="Name of the affected object")
    ]
    message: Annotated[str, Field(description="Issue description")]

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}: {self.message}"


class ApplyResult(BaseModel):
    """Outcome of applying a manifest to the cluster."""

    kind: Annotated[str, Field(description="Object kind")]
    name: Annotated[str, Field(description="Object name")]
    action: Annotated[
        Literal["created", "configured", "unchanged"],
        Field(description="Operation performed on the cluster"),
    ]

    def __str__(self) -> str:
        return f"{self.kind.lower()}/{self.name} {self.action}"
