from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from . import anim
from .errors import StructuralError
from .layout import Variant
from .logger import get_logger
from .resolver import LocationResolver

log = get_logger(__name__)

# Values a sprite gets when its reference is turned off
REFERENCE_DISABLED_VALUES = anim.SpriteValues(unk2=0xFFFF, width=0, height=0)
# Target used when a reference is turned on, until the caller picks one
PLACEHOLDER_TARGET = 0

EditKey = Tuple[int, Variant]


@dataclass(frozen=True)
class RefEdit:
    target: int


@dataclass(frozen=True)
class ValuesEdit:
    values: anim.SpriteValues
    tex_changes: Optional[anim.TexChanges] = None


Edit = Union[RefEdit, ValuesEdit]


def seed_edit(original: anim.ValuesOrRef) -> Edit:
    """Edit equal to the original state of a slot."""
    if isinstance(original, anim.Ref):
        return RefEdit(original.target)
    return ValuesEdit(original.values)


def edit_matches_original(edit: Edit, original: Optional[anim.ValuesOrRef]) -> bool:
    """True when *edit* describes exactly the *original* state."""
    if isinstance(edit, RefEdit):
        return isinstance(original, anim.Ref) and original.target == edit.target
    return (
        edit.tex_changes is None
        and isinstance(original, anim.Values)
        and edit.values == original.values
    )


class EditOverlay:
    """Pending, uncommitted edits keyed by (sprite, variant).

    A key is only present while its edit differs from the original data, so
    :meth:`has_pending_edits` is the same as "something would be saved".
    """

    def __init__(self, resolver: LocationResolver):
        self._resolver = resolver
        self._edits: Dict[EditKey, Edit] = {}

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, key: EditKey) -> bool:
        return key in self._edits

    def get(self, sprite: int, variant: Variant) -> Optional[Edit]:
        return self._edits.get((sprite, variant))

    def items(self) -> Iterator[Tuple[EditKey, Edit]]:
        return iter(list(self._edits.items()))

    def has_pending_edits(self) -> bool:
        return bool(self._edits)

    def clear(self) -> None:
        self._edits.clear()

    def _original(self, sprite: int, variant: Variant) -> Optional[anim.ValuesOrRef]:
        location = self._resolver.resolve(sprite, variant)
        if location is None:
            return None
        return location.values_or_ref()

    def _store(self, key: EditKey, edit: Edit, original: Optional[anim.ValuesOrRef]) -> None:
        if edit_matches_original(edit, original):
            self._edits.pop(key, None)
        else:
            self._edits[key] = edit

    def is_reference(self, sprite: int, variant: Variant) -> bool:
        """Whether the slot is a reference once pending edits are applied."""
        edit = self.get(sprite, variant)
        if edit is not None:
            return isinstance(edit, RefEdit)
        return isinstance(self._original(sprite, variant), anim.Ref)

    def referrers(self, sprite: int, variant: Variant) -> List[int]:
        """Other sprites that reference *sprite* once pending edits are applied."""
        found = set()
        mainsd = self._resolver.mainsd
        if variant is Variant.SD and mainsd is not None:
            for index, slot in enumerate(mainsd.sprites()):
                if isinstance(slot, anim.SpriteRef) and slot.target == sprite:
                    found.add(index)
        for (index, edit_variant), edit in self._edits.items():
            if edit_variant is not variant:
                continue
            if isinstance(edit, RefEdit) and edit.target == sprite:
                found.add(index)
            else:
                found.discard(index)
        found.discard(sprite)
        return sorted(found)

    def _check_not_referenced(self, sprite: int, variant: Variant) -> None:
        referrers = self.referrers(sprite, variant)
        if referrers:
            raise StructuralError(
                f"Sprite {sprite} is referenced by {referrers}; it can't become a reference"
            )

    def set_reference_enabled(self, sprite: int, variant: Variant, enabled: bool) -> None:
        if variant is not Variant.SD:
            log.warning("Can only enable ref on SD sprites")
            return
        original = self._original(sprite, variant)
        if original is None:
            log.warning(f"Tried to update nonexisting sprite {sprite}/{variant.value}")
            return
        key = (sprite, variant)
        if isinstance(original, anim.Ref) == enabled:
            self._edits.pop(key, None)
        elif enabled:
            self._check_not_referenced(sprite, variant)
            self._edits[key] = RefEdit(PLACEHOLDER_TARGET)
        else:
            self._edits[key] = ValuesEdit(REFERENCE_DISABLED_VALUES)

    def set_reference_target(self, sprite: int, variant: Variant, target: int) -> None:
        """Point the SD slot of *sprite* at *target*.

        Raises StructuralError for a non-SD variant, a target outside the
        catalogue, *sprite* itself, a target that is itself a reference, or
        when other sprites already reference *sprite*.
        """
        if variant is not Variant.SD:
            raise StructuralError(f"References only exist for SD sprites, not {variant.value}")
        if target < 0 or target >= self._resolver.sprite_count():
            raise StructuralError(f"Reference target {target} out of range")
        if target == sprite:
            raise StructuralError(f"Sprite {sprite} can't reference itself")
        original = self._original(sprite, variant)
        if original is None:
            log.warning(f"Tried to update nonexisting sprite {sprite}/{variant.value}")
            return
        key = (sprite, variant)
        if isinstance(original, anim.Ref) and original.target == target:
            self._edits.pop(key, None)
            return
        if self.is_reference(target, variant):
            raise StructuralError(
                f"Sprite {target} is itself a reference; {sprite} can't reference it"
            )
        self._check_not_referenced(sprite, variant)
        self._edits[key] = RefEdit(target)

    def set_texture_change(self, sprite: int, variant: Variant, changes: anim.TexChanges) -> None:
        """Attach *changes* to the values edit of a slot; no-op for references."""
        original = self._original(sprite, variant)
        if original is None:
            log.warning(f"Tried to update nonexisting sprite {sprite}/{variant.value}")
            return
        key = (sprite, variant)
        edit = self._edits.get(key) or seed_edit(original)
        if isinstance(edit, RefEdit):
            log.debug(f"Ignoring texture change for reference sprite {sprite}/{variant.value}")
            return
        self._edits[key] = replace(edit, tex_changes=changes)

    def update_values(
        self,
        sprite: int,
        variant: Variant,
        mutator: Callable[[anim.SpriteValues], anim.SpriteValues],
    ) -> None:
        """Apply *mutator* to the slot's values; does nothing for references.

        The edit is dropped again if it ends up equal to the original.
        """
        original = self._original(sprite, variant)
        if original is None:
            log.warning(f"Tried to update nonexisting sprite {sprite}/{variant.value}")
            return
        key = (sprite, variant)
        edit = self._edits.get(key) or seed_edit(original)
        if isinstance(edit, ValuesEdit):
            edit = replace(edit, values=mutator(edit.values))
        self._store(key, edit, original)
