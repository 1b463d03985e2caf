"""TOML configuration plumbing shared by topic-quiz commands.

The quiz loader builds a table of defaults, merges the user's TOML on top
with :func:`merge_defaults` (unknown keys are rejected), and then coerces
individual values with the ``coerce_*`` helpers. Packaged templates are
exposed through :class:`ConfigTemplate` so ``config init`` can scaffold a
commented starting file.
"""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Mapping, MutableMapping

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - interpreter guard
    raise RuntimeError("Python 3.11+ is required for tomllib support.") from exc

__all__ = [
    "TomlConfigError",
    "ConfigTemplate",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
    "get_template",
    "iter_templates",
    "coerce_positive_int",
    "coerce_string_list",
    "coerce_optional_path",
]


class TomlConfigError(RuntimeError):
    """Raised when TOML config IO, parsing or validation fails."""


def load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Merge ``override`` into ``base`` in place.

    Only keys already present in ``base`` are accepted, so a typo such as
    ``[quiz] lenght = 5`` is reported instead of silently ignored.
    """

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        current = base[key]
        if isinstance(current, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected table for '{dotted}', "
                    f"found {type(value).__name__}."
                )
            merge_defaults(current, value, path=f"{dotted}.")
        else:
            base[key] = value


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def coerce_positive_int(value: object, *, key: str) -> int:
    # bool is an int subclass; ``length = true`` is a config mistake.
    if isinstance(value, bool):
        raise TomlConfigError(f"{key} must be a positive integer.")
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise TomlConfigError(f"{key} must be a positive integer.") from exc
    if number <= 0:
        raise TomlConfigError(f"{key} must be a positive integer.")
    return number


def coerce_string_list(value: object, *, key: str) -> tuple[str, ...]:
    """Normalize a TOML array or comma separated string into unique items."""

    if value is None:
        return ()
    if isinstance(value, str):
        raw_items: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw_items = value
    else:
        raise TomlConfigError(f"{key} must be a list of strings.")
    seen: list[str] = []
    for item in raw_items:
        if not isinstance(item, str):
            raise TomlConfigError(f"{key} must be a list of strings.")
        cleaned = item.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


def coerce_optional_path(value: object, *, key: str) -> Path | None:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw).expanduser() if raw else None
    raise TomlConfigError(f"{key} must be a string when provided.")


@dataclass(frozen=True)
class ConfigTemplate:
    """A commented TOML file shipped inside a package."""

    name: str
    filename: str
    description: str
    package: str

    def read_text(self) -> str:
        try:
            resource = resources.files(self.package).joinpath(self.filename)
            return resource.read_text(encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise TomlConfigError(
                f"Template '{self.name}' resource not found."
            ) from exc

    def write(
        self, path: Path, *, overwrite: bool = False, mode: int = 0o600
    ) -> Path:
        return write_toml_template(
            path,
            template=self.read_text(),
            overwrite=overwrite,
            mode=mode,
        )


_TEMPLATES: dict[str, ConfigTemplate] = {
    "quiz": ConfigTemplate(
        name="quiz",
        filename="template.toml",
        description="Defaults for quiz length, question bank and storage.",
        package="topic_quiz.quiz",
    ),
}


def get_template(name: str) -> ConfigTemplate:
    try:
        return _TEMPLATES[name]
    except KeyError as exc:
        raise TomlConfigError(f"Unknown config template '{name}'.") from exc


def iter_templates() -> Iterable[ConfigTemplate]:
    return tuple(_TEMPLATES.values())
