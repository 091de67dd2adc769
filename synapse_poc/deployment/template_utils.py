"""
Placeholder substitution for infrastructure parameter files and artifact templates.

Tokens are replaced literally, so values containing ``/``, ``#``, ``+`` or ``=``
(storage account keys, for example) are written as-is. Files are modified in
place; a second run on an already substituted file finds no token and leaves it
untouched.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Mapping, Optional

from synapse_poc.deployment.errors import TemplateError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".tmpl"


def substitute(path: Path, token: str, value: str) -> int:
    """Replace every occurrence of ``token`` in ``path`` with ``value``.

    Returns:
        The number of occurrences replaced.
    """
    if not token:
        raise TemplateError("Placeholder token must not be empty")
    path = Path(path)
    if not path.is_file():
        raise TemplateError(f"Template file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise TemplateError(f"Template file is not valid UTF-8: {path}") from e
    count = content.count(token)
    if count == 0:
        logger.info("Token %s not present in %s; leaving file unchanged", token, path)
        return 0

    path.write_text(content.replace(token, str(value)), encoding="utf-8")
    logger.debug("Replaced %d occurrence(s) of %s in %s", count, token, path)
    return count


def substitute_all(path: Path, replacements: Mapping[str, str]) -> Dict[str, int]:
    return {token: substitute(path, token, value) for token, value in replacements.items()}


def working_copy_path(template_path: Path) -> Path:
    """``Foo.json.tmpl`` -> ``Foo.json``."""
    template_path = Path(template_path)
    if template_path.suffix != TEMPLATE_SUFFIX:
        raise TemplateError(f"Not a template file (expected '{TEMPLATE_SUFFIX}' suffix): {template_path}")
    return template_path.with_suffix("")


def render_template(
    template_path: Path,
    replacements: Mapping[str, str],
    output_path: Optional[Path] = None,
) -> Path:
    """Copy a ``.tmpl`` file to its working name and substitute the placeholders."""
    template_path = Path(template_path)
    if not template_path.is_file():
        raise TemplateError(f"Template file not found: {template_path}")
    target = Path(output_path) if output_path else working_copy_path(template_path)
    shutil.copyfile(template_path, target)
    substitute_all(target, replacements)
    return target
