"""
Pydantic models for combo input definitions and remote option sources.
"""
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from remote_options.cache.core import cache_key
from remote_options.errors import ConfigError

COMBO_TYPE = "COMBO"


class RemoteOptionSpec(BaseModel):
    """
    Describes a remote source of combo options.

    Example node input definition:
        ["COMBO", {"remote": {
            "route": "/internal/files",
            "query_params": {"folder_path": "checkpoints"},
            "response_key": "files",
            "refresh": 0,
        }}]
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["remote"] = "remote"
    route: str = Field(min_length=1)
    response_key: str = Field(min_length=1)
    refresh: int = Field(default=0, ge=0)              # TTL in ms, 0 = fetch once
    query_params: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)
    default: List[Any] = Field(default_factory=list)
    timeout: Optional[int] = Field(default=None, gt=0)  # ms
    max_retries: Optional[int] = Field(default=None, ge=0)
    refresh_button: bool = True
    control_after_refresh: Optional[Literal["first", "last"]] = None

    @field_validator("route")
    @classmethod
    def _route_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("route must not be blank")
        return value

    @property
    def cache_key(self) -> str:
        """Key shared by every field requesting the same route and params."""
        return cache_key(self.route, self.query_params)

    def default_options(self) -> List[Any]:
        """Fresh copy of the default option list."""
        return list(self.default)


class ComboInputSpec(BaseModel):
    """A parsed combo input: either static options or a remote source."""
    model_config = ConfigDict(frozen=True)

    name: str
    options: List[Any] = Field(default_factory=list)
    remote: Optional[RemoteOptionSpec] = None
    default: Optional[Any] = None

    @property
    def is_remote(self) -> bool:
        return self.remote is not None


def parse_remote_spec(raw: Any) -> RemoteOptionSpec:
    """
    Validate a remote option definition.

    Raises:
        ConfigError: If the definition is not a mapping or fails validation
    """
    if isinstance(raw, RemoteOptionSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Remote option spec must be a mapping, got {type(raw).__name__}")
    try:
        return RemoteOptionSpec.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid remote option spec: {e}") from e


def parse_combo_input(name: str, input_spec: Sequence[Any]) -> ComboInputSpec:
    """
    Parse a combo input definition.

    Accepted forms:
        ["COMBO", {"remote": {...}, "default": ...}]
        ["COMBO", {"options": ["a", "b"]}]
        [["a", "b"], {"default": "a"}]          (legacy static list)

    Raises:
        ConfigError: If the definition is not a combo input or is malformed
    """
    if isinstance(input_spec, (str, bytes)) or not isinstance(input_spec, Sequence) or not input_spec:
        raise ConfigError(f"Input '{name}' must be a non-empty sequence")

    head = input_spec[0]
    extra = input_spec[1] if len(input_spec) > 1 else {}
    if extra is None:
        extra = {}
    if not isinstance(extra, Mapping):
        raise ConfigError(f"Input '{name}' options must be a mapping")

    if isinstance(head, list):
        return ComboInputSpec(name=name, options=list(head), default=extra.get("default"))

    if head != COMBO_TYPE:
        raise ConfigError(f"Input '{name}' is not a combo input (type {head!r})")

    remote = None
    if "remote" in extra:
        remote = parse_remote_spec(extra["remote"])

    options = extra.get("options", [])
    if not isinstance(options, list):
        raise ConfigError(f"Input '{name}' static options must be a list")

    return ComboInputSpec(
        name=name,
        options=options,
        remote=remote,
        default=extra.get("default"),
    )
