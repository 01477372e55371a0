"""Named conflict policies and sync presets."""

from .errors import UnknownPresetError
from .models import (
    CleanupStrategy,
    CompareStrategy,
    ConflictPolicy,
    ReplaceAction,
    SyncExec,
    SyncPreset,
    normalize_extension,
)

# Chart and text files in update packs usually differ only slightly from the
# copies already installed, so they are checked before being overwritten.
CHART_EXTENSIONS = ("bms", "bme", "bml", "pms", "bmson")
UPDATE_PACK_CHECKED_EXTENSIONS = CHART_EXTENSIONS + ("txt",)


def conflict_policy_default() -> ConflictPolicy:
    """Overwrite everything."""
    return ConflictPolicy(by_extension={}, default=ReplaceAction.REPLACE)


def conflict_policy_update_pack() -> ConflictPolicy:
    """Overwrite media, but keep differing chart/text files side by side."""
    return ConflictPolicy(
        by_extension={ext: ReplaceAction.CHECK_REPLACE for ext in UPDATE_PACK_CHECKED_EXTENSIONS},
        default=ReplaceAction.REPLACE,
    )


CONFLICT_POLICY_PRESETS = {
    "default": conflict_policy_default,
    "update_pack": conflict_policy_update_pack,
}


def preset_default() -> SyncPreset:
    """Mirror: copy new/changed files, remove destination extras."""
    return SyncPreset()


def preset_for_append() -> SyncPreset:
    """Append/drain: keep destination extras, drop source files already propagated."""
    return SyncPreset(
        name="Sync preset (for update pack)",
        cleanup=CleanupStrategy(remove_dst_extra=False, remove_src_same=True),
        compare=CompareStrategy(check_size=True, check_mtime=False, check_hash=True),
        exec=SyncExec.NONE,
    )


def preset_flac() -> SyncPreset:
    return SyncPreset(
        name="FLAC sync preset",
        allow_extensions=["flac"],
        allow_others=False,
        cleanup=CleanupStrategy(remove_dst_extra=False, remove_src_same=False),
    )


def preset_mp4_avi() -> SyncPreset:
    return SyncPreset(
        name="MP4/AVI sync preset",
        allow_extensions=["mp4", "avi"],
        allow_others=False,
        cleanup=CleanupStrategy(remove_dst_extra=False, remove_src_same=False),
    )


def preset_cache() -> SyncPreset:
    """Report which media files are missing from a cache, without copying."""
    return SyncPreset(
        name="Cache sync preset",
        allow_extensions=["mp4", "avi", "flac"],
        allow_others=False,
        cleanup=CleanupStrategy(remove_dst_extra=False, remove_src_same=False),
        exec=SyncExec.NONE,
    )


SYNC_PRESETS = {
    "default": preset_default,
    "append": preset_for_append,
    "flac": preset_flac,
    "mp4_avi": preset_mp4_avi,
    "cache": preset_cache,
}


def _lookup(table: dict, name: str, kind: str):
    key = name.strip().lower().replace("-", "_")
    if key not in table:
        valid = ", ".join(sorted(table))
        raise UnknownPresetError(f"Unknown {kind}: {name}. Valid values: {valid}")
    return table[key]


def conflict_policy_from_preset(name: str) -> ConflictPolicy:
    return _lookup(CONFLICT_POLICY_PRESETS, name, "conflict policy preset")()


def sync_preset_from_name(name: str) -> SyncPreset:
    return _lookup(SYNC_PRESETS, name, "sync preset")()


def parse_action(name: str) -> ReplaceAction:
    """Parse an action name such as "check-replace" into a ReplaceAction."""
    return _lookup({a.value: a for a in ReplaceAction}, name, "action")


def parse_extension_overrides(items: list[str]) -> dict[str, ReplaceAction]:
    """
    Parse ``EXT=ACTION`` strings into an extension table.

    Example: ``["txt=rename", ".BMS=check_replace"]``
    """
    table = {}
    for item in items:
        ext, sep, action = item.partition("=")
        if not sep or not ext.strip():
            raise UnknownPresetError(f"Expected EXT=ACTION, got: {item}")
        table[normalize_extension(ext.strip())] = parse_action(action)
    return table
