"""hexpr_core.graph.signature
============================

The signature: the table of operation names an H-expression may reference,
each with its ordered input and output types.

Signature files are JSON objects::

    {
      "add": {"inputs": ["ℝ", "ℝ"], "outputs": ["ℝ"]},
      "neg": {"inputs": ["ℝ"], "outputs": ["ℝ"]}
    }

The compiler only reads a ``Signature``; one instance can be shared by any
number of compilations.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from pydantic import ConfigDict, Field, ValidationError, field_validator

from hexpr_core.api.errors import SignatureError
from hexpr_core.graph.ir_types import OperationType, StrictBaseModel

logger = logging.getLogger(__name__)

# Must agree with the NAME and SYMBOL terminals of the grammar.
_OPERATION_NAME = re.compile(r"[A-Za-z][A-Za-z0-9_\-]*|(?:[+\-*<>=!&|^%~@$?]|/(?!/))+")


class Signature(StrictBaseModel):
    """Immutable mapping from operation name to ``OperationType``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    operations: Dict[str, OperationType] = Field(default_factory=dict)

    @field_validator("operations")
    @classmethod
    def _check_operation_names(
        cls, value: Dict[str, OperationType]
    ) -> Dict[str, OperationType]:
        for name in value:
            if not _OPERATION_NAME.fullmatch(name):
                raise ValueError(
                    f"Operation name '{name}' cannot be written in an "
                    f"H-expression"
                )
        return value

    # ---- Construction ----

    @classmethod
    def empty(cls) -> "Signature":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Signature":
        """Build a signature from the JSON file layout (name -> type)."""
        if not isinstance(data, Mapping):
            raise SignatureError(
                f"Signature must be a JSON object, got {type(data).__name__}"
            )
        try:
            return cls(operations=dict(data))
        except ValidationError as exc:
            raise SignatureError(f"Invalid signature: {exc}") from exc

    # ---- Lookup ----

    def get(self, name: str) -> Optional[OperationType]:
        return self.operations.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.operations

    def names(self) -> Iterator[str]:
        return iter(sorted(self.operations))

    def __len__(self) -> int:
        return len(self.operations)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: op.model_dump() for name, op in self.operations.items()}


def load_signature(path: Optional[Union[str, Path]]) -> Signature:
    """Read a JSON signature file; ``None`` gives the empty signature.

    Raises
    ------
    SignatureError
        If the file is missing, is not valid JSON, or does not describe a
        signature.
    """
    if path is None:
        return Signature.empty()

    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SignatureError(f"Cannot read signature file: {exc}", str(p)) from exc
    except json.JSONDecodeError as exc:
        raise SignatureError(
            f"Signature file is not valid JSON: {exc}", str(p)
        ) from exc

    try:
        signature = Signature.from_dict(data)
    except SignatureError as exc:
        raise SignatureError(exc.message, str(p)) from exc

    logger.debug(f"Loaded {len(signature)} operations from {p}")
    return signature
