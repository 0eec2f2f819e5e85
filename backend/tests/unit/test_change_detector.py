"""Unit tests for snapshot diffing and the retained snapshot store."""

from recordsync.application.services import SnapshotStore, diff_snapshots
from recordsync.domain.entities import RecordClass


def test_identical_snapshots_produce_empty_diff():
    snapshot = {1: "a", 2: "b"}
    diff = diff_snapshots(snapshot, dict(snapshot))
    assert diff.is_empty


def test_diff_classifies_added_changed_and_deleted():
    previous = {1: "a", 2: "b", 3: "c"}
    current = {1: "a", 2: "B", 4: "d"}
    diff = diff_snapshots(previous, current)

    assert diff.added == {4}
    assert diff.changed == {2}
    assert diff.deleted == {3}
    assert diff.upserted == {2, 4}


def test_diff_sets_are_disjoint_and_exclude_unchanged():
    previous = {i: str(i) for i in range(100)}
    current = {i: str(i) for i in range(50, 150)}
    current[60] = "edited"
    diff = diff_snapshots(previous, current)

    assert not (diff.added & diff.changed)
    assert not (diff.added & diff.deleted)
    assert not (diff.changed & diff.deleted)
    assert diff.changed == {60}
    assert len(diff.added) == 50
    assert len(diff.deleted) == 50


def test_diff_against_empty_previous_marks_everything_added():
    diff = diff_snapshots({}, {1: "a", 2: "b"})
    assert diff.added == {1, 2}
    assert not diff.changed and not diff.deleted


def test_snapshot_store_starts_without_baseline():
    store = SnapshotStore()
    assert not store.has_baseline
    assert dict(store.get(RecordClass.TEST)) == {}


def test_commit_replaces_whole_class_snapshot():
    store = SnapshotStore()
    store.commit({RecordClass.TEST: {1: "a", 2: "b"}})
    store.commit({RecordClass.TEST: {2: "b"}})

    assert store.has_baseline
    assert dict(store.get(RecordClass.TEST)) == {2: "b"}


def test_committed_snapshot_is_isolated_from_caller_mutation():
    store = SnapshotStore()
    source = {1: "a"}
    store.commit({RecordClass.TEST: source})
    source[2] = "b"

    assert dict(store.get(RecordClass.TEST)) == {1: "a"}


def test_clear_drops_baseline():
    store = SnapshotStore()
    store.commit({RecordClass.PROCESS: {}})
    store.clear()
    assert not store.has_baseline
