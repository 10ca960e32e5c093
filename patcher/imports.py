"""Named-import synthesis for the date-fns modules."""

from __future__ import annotations

from typing import Iterable

from chronolint.syntax.nodes import ImportDeclaration, Program
from patcher.types import TextEdit

DATE_FNS = "date-fns"
DATE_FNS_TZ = "@date-fns/tz"
RECOGNIZED_MODULES = (DATE_FNS_TZ, DATE_FNS)


def _format_import(module: str, specifiers: list[str]) -> str:
    return f"import {{ {', '.join(specifiers)} }} from '{module}';"


def imported_names(program: Program, module: str) -> set[str]:
    """Names bound under their own name by value imports from ``module``."""
    names: set[str] = set()
    for statement in program.body:
        if not isinstance(statement, ImportDeclaration):
            continue
        if statement.source != module or statement.type_only:
            continue
        for spec in statement.specifiers:
            if spec.type_only or spec.local is None:
                continue
            if spec.local.name == spec.imported:
                names.add(spec.imported)
    return names


def _merge_target(program: Program, module: str) -> ImportDeclaration | None:
    for statement in program.body:
        if not isinstance(statement, ImportDeclaration):
            continue
        if statement.source != module or statement.type_only:
            continue
        if statement.default is not None or statement.namespace is not None:
            continue
        if statement.specifiers:
            return statement
    return None


def _insert_anchor(program: Program, module: str) -> ImportDeclaration | None:
    anchor: ImportDeclaration | None = None
    for statement in program.body:
        if not isinstance(statement, ImportDeclaration):
            continue
        if statement.source in RECOGNIZED_MODULES and statement.source < module:
            anchor = statement
    return anchor


def ensure_named_imports(program: Program, module: str, names: Iterable[str]) -> TextEdit | None:
    """Return the single edit that makes ``names`` importable from ``module``.

    Returns ``None`` when every name is already imported. Existing specifiers
    (including aliases) are preserved when merging.
    """
    wanted = sorted(set(names))
    if not wanted:
        return None
    missing = [name for name in wanted if name not in imported_names(program, module)]
    if not missing:
        return None

    target = _merge_target(program, module)
    if target is not None:
        items: dict[str, str] = {}
        for spec in target.specifiers:
            items.setdefault(spec.text, spec.imported)
        for name in missing:
            items.setdefault(name, name)
        ordered = sorted(items, key=lambda text: (items[text], text))
        return TextEdit(target.start, target.end, _format_import(module, ordered))

    statement = _format_import(module, missing)
    anchor = _insert_anchor(program, module)
    if anchor is not None:
        return TextEdit.insert(anchor.end, "\n" + statement)
    if program.body:
        return TextEdit.insert(program.body[0].start, statement + "\n")
    return TextEdit.insert(0, statement + "\n")


def import_edits(program: Program, requirements: dict[str, Iterable[str]]) -> list[TextEdit]:
    edits: list[TextEdit] = []
    for module in RECOGNIZED_MODULES:
        names = requirements.get(module)
        if not names:
            continue
        edit = ensure_named_imports(program, module, names)
        if edit is not None:
            edits.append(edit)
    return edits
