"""Typed deployment configuration.

A deploy is driven by one immutable ``DeploymentDescriptor``. It can be built
directly in Python (which is the only way to attach embedded hook callables)
or loaded from a ``deploy.toml`` file:

    [deploy]
    root = "/srv/shop"
    revision = "main"
    keep_releases = 5
    slug = "timestamp"

    [source]
    kind = "git"
    repository = "https://example.com/shop.git"

    [links]
    log = "log"

    [links.before_migrate]
    "config/database.toml" = "config/database.toml"

    [migrate]
    enabled = true
    command = "python manage.py migrate"

    [restart]
    command = ["systemctl", "restart", "shop"]
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_str_map,
    get_table,
)

__all__ = [
    "Command",
    "ConfigError",
    "DependenciesConfig",
    "DeploymentDescriptor",
    "EmbeddedHook",
    "HOOK_NAMES",
    "HooksConfig",
    "SourceConfig",
    "DEFAULT_HOOK_SUFFIX",
    "DEFAULT_KEEP_RELEASES",
    "load_config",
]

DEFAULT_KEEP_RELEASES = 5
DEFAULT_HOOK_SUFFIX = ".rb"

HOOK_NAMES = ("before_migrate", "before_symlink", "before_restart", "after_restart")

Command = str | tuple[str, ...]
EmbeddedHook = Callable[..., object]
SlugStrategy = Literal["revision", "timestamp"]
Ordering = Literal["name", "ledger"]
SourceKind = Literal["git", "local"]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when deploy.toml cannot be loaded or is invalid."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class HooksConfig:
    """Callback code for each pipeline hook point.

    Each value is an embedded callable, a release-relative file path, or None
    to fall back to ``deploy/{hook}{suffix}`` inside the release.
    """

    before_migrate: object = None
    before_symlink: object = None
    before_restart: object = None
    after_restart: object = None
    suffix: str = DEFAULT_HOOK_SUFFIX

    def get(self, name: str) -> object:
        if name not in HOOK_NAMES:
            raise KeyError(name)
        return getattr(self, name)


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Where the artifact comes from.

    ``destination`` is the long-lived working copy that ``sync`` updates and
    releases are copied from. Defaults to ``{shared_path}/cached-copy``.
    """

    kind: SourceKind = "local"
    location: str | None = None
    destination: Path | None = None


@dataclass(frozen=True, slots=True)
class DependenciesConfig:
    installer: Literal["pip", "none"] = "pip"
    manifest: str = "requirements.txt"


def _empty_env() -> dict[str, str]:
    """Factory for an empty environment (helps type inference)."""
    return {}


@dataclass(frozen=True, slots=True)
class DeploymentDescriptor:
    """Immutable configuration for one deploy/rollback invocation."""

    deploy_root: Path
    shared_path: Path | None = None
    current_path: Path | None = None
    revision: str = "HEAD"
    keep_releases: int = DEFAULT_KEEP_RELEASES
    symlinks: tuple[tuple[str, str], ...] = ()
    symlink_before_migrate: tuple[tuple[str, str], ...] = ()
    purge_before_symlink: tuple[str, ...] = ()
    create_dirs_before_symlink: tuple[str, ...] = ()
    migrate: bool = False
    migration_command: Command | None = None
    restart_command: Command | EmbeddedHook | None = None
    hooks: HooksConfig = field(default_factory=HooksConfig)
    user: str | None = None
    group: str | None = None
    environment: Mapping[str, str] = field(default_factory=_empty_env)
    source: SourceConfig = field(default_factory=SourceConfig)
    force_export: bool = False
    slug_strategy: SlugStrategy = "revision"
    # None: "ledger" for revision slugs (SHAs and digests don't sort by time),
    # "name" for fixed-width timestamps.
    ordering: Ordering | None = None
    dependencies: DependenciesConfig = field(default_factory=DependenciesConfig)

    def __post_init__(self) -> None:
        if self.shared_path is None:
            object.__setattr__(self, "shared_path", self.deploy_root / "shared")
        if self.current_path is None:
            object.__setattr__(self, "current_path", self.deploy_root / "current")
        if self.ordering is None:
            default: Ordering = "ledger" if self.slug_strategy == "revision" else "name"
            object.__setattr__(self, "ordering", default)
        if self.keep_releases < 1:
            raise ValueError(f"keep_releases must be >= 1, got {self.keep_releases}")

    @property
    def releases_dir(self) -> Path:
        return self.deploy_root / "releases"

    @property
    def ledger_path(self) -> Path:
        return self.deploy_root / "releases.json"

    @property
    def shared_dir(self) -> Path:
        return cast(Path, self.shared_path)

    @property
    def current_link(self) -> Path:
        return cast(Path, self.current_path)

    @property
    def checkout_path(self) -> Path:
        return self.source.destination or self.shared_dir / "cached-copy"

    def release_path(self, slug: str) -> Path:
        return self.releases_dir / slug


# -----------------------------------------------------------------------------
# TOML loading
# -----------------------------------------------------------------------------


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(
            ConfigError(
                f"Config file not found: {path}",
                path=path,
                hint="Pass --config or create deploy.toml",
            )
        )
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def _resolve_path(base: Path, raw: str | None) -> Path | None:
    if raw is None:
        return None
    p = Path(raw).expanduser()
    return p if p.is_absolute() else (base / p)


def _get_command(table: Mapping[str, object], key: str) -> Command | None:
    """A command is either a shell string or a list of arguments."""
    text = get_str(table, key)
    if text is not None:
        return text
    items = as_obj_list(table.get(key))
    if items is None:
        return None
    if not items or not all(isinstance(i, str) for i in items):
        raise ValueError(f"'{key}' must be a string or a list of strings")
    return tuple(cast(list[str], items))


def _choice[S: str](value: str | None, allowed: tuple[S, ...], default: S, what: str) -> S:
    if value is None:
        return default
    if value not in allowed:
        raise ValueError(f"{what} must be one of {', '.join(allowed)} (got {value!r})")
    return cast(S, value)


def _ordering(value: str | None) -> Ordering | None:
    if value is None:
        return None
    return _choice(value, ("name", "ledger"), "name", "[deploy] ordering")


def descriptor_from_dict(data: Mapping[str, object], *, base_dir: Path) -> DeploymentDescriptor:
    """Build a descriptor from parsed TOML.

    Raises:
        ValueError: if a value has the wrong shape.
    """
    deploy = get_table(data, "deploy") or {}
    source = get_table(data, "source") or {}
    migrate = get_table(data, "migrate") or {}
    restart = get_table(data, "restart") or {}
    hooks = get_table(data, "hooks") or {}
    deps = get_table(data, "dependencies") or {}

    root = _resolve_path(base_dir, get_str(deploy, "root"))
    if root is None:
        raise ValueError("[deploy] root is required")

    kind = _choice(get_str(source, "kind"), ("git", "local"), "local", "[source] kind")
    location = get_str(source, "repository") or get_str(source, "path")
    if kind == "local" and location is not None:
        location = str(_resolve_path(base_dir, location))

    keep = get_int(deploy, "keep_releases")
    env_pairs = get_str_map(data, "env")
    if "env" in data and env_pairs is None:
        raise ValueError("[env] values must be strings")

    return DeploymentDescriptor(
        deploy_root=root,
        shared_path=_resolve_path(base_dir, get_str(deploy, "shared_path")),
        current_path=_resolve_path(base_dir, get_str(deploy, "current_path")),
        revision=get_str(deploy, "revision") or "HEAD",
        keep_releases=DEFAULT_KEEP_RELEASES if keep is None else keep,
        symlinks=get_str_map(data, "links") or (),
        symlink_before_migrate=get_str_map(get_table(data, "links") or {}, "before_migrate") or (),
        purge_before_symlink=get_str_list(deploy, "purge_before_symlink") or (),
        create_dirs_before_symlink=get_str_list(deploy, "create_dirs_before_symlink") or (),
        migrate=bool(get_bool(migrate, "enabled")),
        migration_command=_get_command(migrate, "command"),
        restart_command=_get_command(restart, "command"),
        hooks=HooksConfig(
            before_migrate=get_str(hooks, "before_migrate"),
            before_symlink=get_str(hooks, "before_symlink"),
            before_restart=get_str(hooks, "before_restart"),
            after_restart=get_str(hooks, "after_restart"),
            suffix=get_str(hooks, "suffix") or DEFAULT_HOOK_SUFFIX,
        ),
        user=get_str(deploy, "user"),
        group=get_str(deploy, "group"),
        environment=dict(env_pairs or ()),
        source=SourceConfig(
            kind=kind,
            location=location,
            destination=_resolve_path(base_dir, get_str(source, "destination")),
        ),
        force_export=bool(get_bool(source, "force_export")),
        slug_strategy=_choice(
            get_str(deploy, "slug"), ("revision", "timestamp"), "revision", "[deploy] slug"
        ),
        ordering=_ordering(get_str(deploy, "ordering")),
        dependencies=DependenciesConfig(
            installer=_choice(get_str(deps, "installer"), ("pip", "none"), "pip", "[dependencies] installer"),
            manifest=get_str(deps, "manifest") or "requirements.txt",
        ),
    )


def load_config(path: Path) -> Result[DeploymentDescriptor, ConfigError]:
    """Load a deployment descriptor from a TOML file.

    Relative paths in the file resolve against the file's directory.
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(descriptor_from_dict(result.value, base_dir=path.parent.resolve()))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
