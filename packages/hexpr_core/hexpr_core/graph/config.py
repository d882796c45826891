"""hexpr_core.graph.config
=========================

Compiler options.

``CompilerConfig`` can be built directly or loaded from YAML::

    scope: program          # or: block
    strict_binding: true
    require_types: false
    max_depth: 256
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import Field, ValidationError

from hexpr_core.api.errors import ConfigError
from hexpr_core.graph.ir_types import StrictBaseModel

logger = logging.getLogger(__name__)


class ScopeMode(str, Enum):
    """Region of source text over which a variable name denotes one wire."""

    program = "program"
    block = "block"


class CompilerConfig(StrictBaseModel):
    """Options for ``HExprCompiler``.

    Attributes
    ----------
    scope : ScopeMode
        ``program``: every occurrence of a name in the whole program shares
        one wire.  ``block``: sharing stops at the innermost enclosing
        composition or tensor.
    strict_binding : bool
        Reject consumer occurrences whose value arrives from a different
        variable that never receives a value, such as ``y`` in
        ``([.x] [y.])``.
    require_types : bool
        Reject hypergraphs that still contain untyped wires after inference.
    max_depth : int
        Maximum nesting depth of the syntax tree.
    """

    scope: ScopeMode = ScopeMode.program
    strict_binding: bool = True
    require_types: bool = False
    max_depth: int = Field(default=256, ge=1, le=300)


def load_config(path: Optional[Union[str, Path]]) -> CompilerConfig:
    """Load a ``CompilerConfig`` from a YAML file; ``None`` gives defaults.

    Raises
    ------
    ConfigError
        If the file cannot be read or does not validate.
    """
    if path is None:
        return CompilerConfig()

    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc}", str(p)) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {exc}", str(p)) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must contain a mapping, got {type(data).__name__}",
            str(p),
        )

    try:
        config = CompilerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid compiler config: {exc}", str(p)) from exc

    logger.debug(f"Loaded compiler config from {p}: {config.model_dump()}")
    return config
