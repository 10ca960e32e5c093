from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from patcher.types import Patch

if TYPE_CHECKING:
    from chronolint.findings import Diagnostic


def apply_patch(text: str, patch: Patch) -> str:
    return patch.apply(text)


def select_patches(patches: Iterable[Patch]) -> tuple[list[Patch], list[Patch]]:
    """Split patches into a non-conflicting batch and the deferred rest.

    Patches are taken in order of their first edit. A patch is accepted only
    when it starts after everything accepted so far ends; the rest wait for
    the next pass over a re-parsed file.
    """
    accepted: list[Patch] = []
    deferred: list[Patch] = []
    last_end = -1
    for patch in sorted(patches, key=lambda p: (p.start, p.end)):
        if not patch.edits:
            continue
        if patch.start > last_end:
            accepted.append(patch)
            last_end = patch.end
        else:
            deferred.append(patch)
    return accepted, deferred


def apply_patches(text: str, patches: Iterable[Patch]) -> tuple[str, list[Patch], list[Patch]]:
    accepted, deferred = select_patches(patches)
    for patch in reversed(accepted):
        text = patch.apply(text)
    return text, accepted, deferred


def apply_fixes(text: str, diagnostics: Iterable["Diagnostic"]) -> tuple[str, list[Patch], list[Patch]]:
    """Apply the autofixes of ``diagnostics`` the way an editor host would."""
    return apply_patches(text, [d.fix for d in diagnostics if d.fix is not None])
