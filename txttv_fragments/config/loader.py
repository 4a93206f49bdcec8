"""Load conversion settings YAML into typed dataclasses."""

from __future__ import annotations

import codecs
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import _as_bool, _as_int, _as_path, _as_str_list, _check_xml_name
from .models import ConfigError, ConvertConfig


def load_convert_config(path: Path | None) -> ConvertConfig:
    """Load the YAML configuration describing a conversion batch.

    Parameters
    ----------
    path : Path or None
        Filesystem path to the YAML settings file (for example,
        ``config/fragments.yaml``). ``None`` returns the built-in defaults.

    Returns
    -------
    ConvertConfig
        Settings with every omitted key filled from the defaults.

    Raises
    ------
    FileNotFoundError
        If ``path`` is given but does not exist.
    ConfigError
        If the top-level structure is not a mapping, a section has the wrong
        shape, or the values are inconsistent (for example ``min_page`` above
        ``max_page``).
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> config = load_convert_config(Path("config/fragments.yaml"))  # doctest: +SKIP
    >>> config.output_path(101)  # doctest: +SKIP
    PosixPath('policies/fragments/page-101.xml')
    """
    base = ConvertConfig()
    if path is None:
        return base
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise ConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    source = _section(raw, "source")
    content = _section(raw, "content")
    output = _section(raw, "output")
    pages = _section(raw, "pages")
    fragment = _section(raw, "fragment")
    validation = _section(raw, "validation")
    batch = _section(raw, "batch")

    config = ConvertConfig(
        source_dir=_as_path(source.get("dir"), base.source_dir),
        template_name=str(source.get("template", base.template_name)),
        styles_dir=str(source.get("styles_dir", base.styles_dir)),
        scripts_dir=str(source.get("scripts_dir", base.scripts_dir)),
        style_files=_as_str_list("source.styles", source.get("styles")),
        script_files=_as_str_list("source.scripts", source.get("scripts")),
        content_dir=_as_path(content.get("dir"), base.content_dir),
        content_extension=str(content.get("extension", base.content_extension)),
        content_encoding=str(content.get("encoding", base.content_encoding)),
        max_content_chars=_as_int(
            "content.max_chars", content.get("max_chars"), base.max_content_chars
        ),
        output_dir=_as_path(output.get("dir"), base.output_dir),
        output_extension=str(output.get("extension", base.output_extension)),
        filename_template=str(
            output.get("filename_template", base.filename_template)
        ),
        max_fragment_bytes=_as_int(
            "output.max_bytes", output.get("max_bytes"), base.max_fragment_bytes
        ),
        min_page=_as_int("pages.min", pages.get("min"), base.min_page),
        max_page=_as_int("pages.max", pages.get("max"), base.max_page),
        root_tag=_check_xml_name(
            "fragment.root_tag", str(fragment.get("root_tag", base.root_tag))
        ),
        body_tag=_check_xml_name(
            "fragment.body_tag", str(fragment.get("body_tag", base.body_tag))
        ),
        validate=_as_bool("validation.enabled", validation.get("enabled"), base.validate),
        allowed_script_origins=(
            _as_str_list(
                "validation.allowed_script_origins",
                validation.get("allowed_script_origins"),
            )
            if "allowed_script_origins" in validation
            else list(base.allowed_script_origins)
        ),
        style_advisory_bytes=_as_int(
            "validation.style_advisory_bytes",
            validation.get("style_advisory_bytes"),
            base.style_advisory_bytes,
        ),
        script_advisory_bytes=_as_int(
            "validation.script_advisory_bytes",
            validation.get("script_advisory_bytes"),
            base.script_advisory_bytes,
        ),
        workers=_as_int("batch.workers", batch.get("workers"), base.workers),
    )
    check_config(config)
    return config


def check_config(config: ConvertConfig) -> None:
    """Raise :class:`ConfigError` when ``config`` holds inconsistent values."""
    if config.min_page > config.max_page:
        msg = (
            f"pages.min ({config.min_page}) must not exceed "
            f"pages.max ({config.max_page})."
        )
        raise ConfigError(msg)
    for name in ("max_content_chars", "max_fragment_bytes", "workers"):
        if getattr(config, name) < 1:
            msg = f"Setting '{name}' must be a positive integer."
            raise ConfigError(msg)
    if "{page}" not in config.filename_template:
        msg = "output.filename_template must contain '{page}'."
        raise ConfigError(msg)
    try:
        codecs.lookup(config.content_encoding)
    except LookupError as exc:
        msg = f"content.encoding '{config.content_encoding}' is not a known codec."
        raise ConfigError(msg) from exc


def _section(raw: typ.Mapping[str, typ.Any], key: str) -> dict[str, typ.Any]:
    """Return the mapping stored under ``key`` or an empty dict."""
    value = raw.get(key)
    match value:
        case None:
            return {}
        case dict():
            return dict(value)
        case _:
            msg = f"Section '{key}' must be a mapping."
            raise ConfigError(msg)


__all__ = ["check_config", "load_convert_config"]
