"""Tests for instruction command models and the command registry."""

import json

import pytest
from pydantic import ValidationError

from nsync.errors import InternalError, SchemaError
from nsync.instructions.commands import StoreCleanupCommand, StoreSwitchCommand
from nsync.instructions.models import (
    CleanupCommand,
    LoadCommand,
    RebootCommand,
    StoreRoot,
    SwitchCommand,
)
from nsync.instructions.registry import CommandRegistry, default_registry

REV_A = "a" * 40
REV_B = "b" * 40


@pytest.fixture
def registry():
    return default_registry()


def _instruction_json():
    return json.dumps(
        [
            {
                "kind": "load",
                "archivePath": "archive",
                "deltaDependencies": [{"nixPath": "/nix/store/x-sys", "gitRevision": REV_A}],
                "partialNarinfos": False,
                "item": {"nixPath": "/nix/store/y-sys", "gitRevision": REV_B},
            },
            {
                "kind": "switch",
                "item": {"nixPath": "/nix/store/y-sys", "gitRevision": REV_B},
                "mode": "immediate",
            },
            {"kind": "cleanup", "generationsToKeep": 3},
            {"kind": "reboot", "delaySeconds": 5},
        ]
    )


# ── models ──────────────────────────────────────────────────────────


class TestCommandModels:
    def test_store_root_uses_camel_case_aliases(self):
        root = StoreRoot(nix_path="/nix/store/x-y", git_revision=REV_A)
        assert root.model_dump(by_alias=True) == {"nixPath": "/nix/store/x-y", "gitRevision": REV_A}

    def test_switch_mode_defaults_to_next_reboot(self):
        cmd = SwitchCommand(item=StoreRoot(nix_path="/nix/store/x-y", git_revision=REV_A))
        assert cmd.mode == "next-reboot"

    def test_switch_mode_is_closed(self):
        with pytest.raises(ValidationError):
            SwitchCommand(
                item=StoreRoot(nix_path="/nix/store/x-y", git_revision=REV_A), mode="later"
            )

    def test_cleanup_needs_positive_count(self):
        with pytest.raises(ValidationError):
            CleanupCommand(generations_to_keep=0)

    def test_reboot_delay_optional_but_positive(self):
        assert RebootCommand().delay_seconds is None
        with pytest.raises(ValidationError):
            RebootCommand(delay_seconds=0)

    def test_commands_are_frozen(self):
        cmd = CleanupCommand(generations_to_keep=2)
        with pytest.raises(ValidationError):
            cmd.generations_to_keep = 5


# ── registry ────────────────────────────────────────────────────────


class TestCommandRegistry:
    def test_default_kinds_in_order(self, registry):
        assert registry.kinds == ["load", "switch", "cleanup", "reboot"]

    def test_parse_instruction_keeps_order_and_types(self, registry):
        commands = registry.parse_instruction(_instruction_json())
        assert [type(c) for c in commands] == [
            LoadCommand,
            SwitchCommand,
            CleanupCommand,
            RebootCommand,
        ]
        assert commands[0].delta_dependencies[0].git_revision == REV_A
        assert commands[1].mode == "immediate"

    def test_dump_uses_aliases_and_drops_none(self, registry):
        dumped = json.loads(
            registry.dump_instruction([RebootCommand(), CleanupCommand(generations_to_keep=1)])
        )
        assert dumped == [{"kind": "reboot"}, {"kind": "cleanup", "generationsToKeep": 1}]

    def test_dump_is_indented(self, registry):
        text = registry.dump_instruction([CleanupCommand(generations_to_keep=1)])
        assert text.startswith("[\n  {")

    def test_dump_then_parse_is_stable(self, registry):
        commands = registry.parse_instruction(_instruction_json())
        assert registry.parse_instruction(registry.dump_instruction(commands)) == commands

    @pytest.mark.parametrize(
        "payload",
        [
            '[{"kind": "teleport"}]',
            '[{"kind": "cleanup", "generationsToKeep": 0}]',
            '[{"kind": "cleanup", "generationsToKeep": 2, "extra": true}]',
            '[{"kind": "switch", "mode": "immediate"}]',
            '{"kind": "cleanup", "generationsToKeep": 2}',
            "not json",
        ],
    )
    def test_invalid_instruction_raises_schema_error(self, registry, payload):
        with pytest.raises(SchemaError) as exc:
            registry.parse_instruction(payload)
        assert isinstance(exc.value.__cause__, ValidationError)

    def test_unknown_kind_is_internal_error(self, registry):
        with pytest.raises(InternalError):
            registry.get("teleport")

    def test_duplicate_kinds_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            CommandRegistry([StoreCleanupCommand(), StoreCleanupCommand()])

    def test_empty_registry_rejected(self):
        with pytest.raises(ValueError):
            CommandRegistry([])

    def test_restricted_registry_rejects_other_kinds(self):
        registry = CommandRegistry([StoreSwitchCommand()])
        with pytest.raises(SchemaError):
            registry.parse_instruction('[{"kind": "cleanup", "generationsToKeep": 2}]')
