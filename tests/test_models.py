"""Tests for core data models."""

from datetime import datetime

import pytest

from scanquell.core.models import (
    STATE_ABSENT,
    AccessResult,
    AccessStatus,
    ApplyReport,
    OutcomeStatus,
    ResourceIdentity,
    ResourceKind,
    ResourceOutcome,
    ScheduledTaskInfo,
    SnapshotRecord,
    StartupMode,
    UndoReport,
)


class TestStartupMode:
    """Tests for StartupMode parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Automatic", StartupMode.AUTOMATIC),
            ("AutomaticDelayedStart", StartupMode.AUTOMATIC_DELAYED),
            ("Manual", StartupMode.MANUAL),
            ("Disabled", StartupMode.DISABLED),
            ("AUTO_START", StartupMode.AUTOMATIC),
            ("AUTO_START_DELAYED", StartupMode.AUTOMATIC_DELAYED),
            ("DEMAND_START", StartupMode.MANUAL),
            ("Auto", StartupMode.AUTOMATIC),
            (2, StartupMode.AUTOMATIC),
            (3, StartupMode.MANUAL),
            (4, StartupMode.DISABLED),
        ],
    )
    def test_parse_known_values(self, value, expected):
        assert StartupMode.parse(value) == expected

    @pytest.mark.parametrize("value", [None, "", "Sometimes", 7])
    def test_parse_unknown_values(self, value):
        assert StartupMode.parse(value) is None

    def test_sc_values(self):
        assert StartupMode.MANUAL.sc_value == "demand"
        assert StartupMode.AUTOMATIC_DELAYED.sc_value == "delayed-auto"


class TestAccessResult:
    """Tests for AccessResult constructors."""

    def test_success(self):
        result = AccessResult.success(5)
        assert result.ok
        assert not result.absent
        assert result.value == 5

    def test_failure(self):
        result = AccessResult.failure("denied")
        assert result.status == AccessStatus.FAILED
        assert not result.ok
        assert result.error == "denied"

    def test_missing(self):
        result = AccessResult.missing()
        assert result.absent
        assert not result.ok


class TestResourceIdentity:
    """Tests for ResourceIdentity."""

    def test_file_stem_is_filesystem_safe(self):
        identity = ResourceIdentity(
            ResourceKind.REGISTRY, r"HKCU\Software\Microsoft\GamingApp\Discovery"
        )
        assert identity.file_stem == "registry_HKCU_Software_Microsoft_GamingApp_Discovery"

    def test_str(self):
        identity = ResourceIdentity(ResourceKind.SERVICE, "GamingServicesNet")
        assert str(identity) == "service:GamingServicesNet"

    def test_hashable(self):
        a = ResourceIdentity(ResourceKind.SERVICE, "X")
        b = ResourceIdentity(ResourceKind.SERVICE, "X")
        assert {a, b} == {a}


class TestSnapshotRecord:
    """Tests for SnapshotRecord serialization."""

    def test_dict_round_trip(self):
        record = SnapshotRecord(
            identity=ResourceIdentity(ResourceKind.REGISTRY, r"HKLM\SOFTWARE\X"),
            state="registry_HKLM_SOFTWARE_X.reg",
            captured_at=datetime(2026, 10, 18, 10, 15, 0, 123456),
            touched_values=("EnableDriveScan",),
        )

        restored = SnapshotRecord.from_dict(record.to_dict())

        assert restored == record

    def test_missing_touched_values_defaults_empty(self):
        record = SnapshotRecord.from_dict({
            "kind": "service",
            "name": "GamingServicesNet",
            "state": "Manual",
            "captured_at": "2026-10-18T10:15:00",
        })
        assert record.touched_values == ()
        assert record.kind == ResourceKind.SERVICE

    def test_absent(self):
        record = SnapshotRecord(ResourceIdentity(ResourceKind.SERVICE, "X"), STATE_ABSENT)
        assert record.is_absent

    def test_bad_kind_raises(self):
        with pytest.raises(ValueError):
            SnapshotRecord.from_dict({
                "kind": "driver",
                "name": "X",
                "state": "Manual",
                "captured_at": "2026-10-18T10:15:00",
            })


class TestScheduledTaskInfo:
    """Tests for ScheduledTaskInfo."""

    def test_full_path(self):
        task = ScheduledTaskInfo("LibraryScanDaily", "\\Microsoft\\XboxApp\\")
        assert task.full_path == "\\Microsoft\\XboxApp\\LibraryScanDaily"

    def test_root_full_path(self):
        assert ScheduledTaskInfo("T", "\\").full_path == "\\T"

    def test_is_disabled_case_insensitive(self):
        assert ScheduledTaskInfo("T", "\\", "DISABLED").is_disabled
        assert not ScheduledTaskInfo("T", "\\", "Ready").is_disabled


class TestReports:
    """Tests for run reports."""

    def test_skipped_is_not_a_failure(self):
        report = ApplyReport(
            generation="g",
            outcomes=[
                ResourceOutcome("op", "a", OutcomeStatus.SKIPPED),
                ResourceOutcome("op", "b", OutcomeStatus.FAILED),
            ],
        )
        assert [o.resource for o in report.failures] == ["b"]

    def test_undo_report_defaults(self):
        report = UndoReport(source=None)
        assert report.tasks_reenabled == 0
        assert report.failures == []
