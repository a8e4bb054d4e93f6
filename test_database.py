"""
Tests for DatabaseManager and ConfigWatcher - blob store and control keys.

Run with: python test_database.py
"""

import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dosewise.constants import BLOB_KEYS, adherence_data_key, classifier_source_key, detection_enabled_key
from dosewise.logging.ConfigWatcher import ConfigWatcher
from dosewise.logging.Database import DatabaseManager


def test_blob_roundtrip_and_overwrite():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "nested", "test.db"))
        assert db.get_blob(adherence_data_key) is None

        db.set_blob(adherence_data_key, '{"a": 1}')
        db.set_blob(adherence_data_key, '{"a": 2}')
        assert db.get_blob(adherence_data_key) == '{"a": 2}'

        db.set_blob(classifier_source_key, "weights/pills.pt")
        db.delete_blobs(BLOB_KEYS)
        assert db.get_blob(adherence_data_key) is None
        assert db.get_blob(classifier_source_key) is None
        db.close()
    print("PASS test_blob_roundtrip_and_overwrite")


def test_default_config_values():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "test.db"))
        config = db.get_all_config()
        assert config[detection_enabled_key] == '0'
        assert config['notifications_enabled'] == '1'
        assert db.get_config("missing", "fallback") == "fallback"
        db.close()
    print("PASS test_default_config_values")


def test_config_watcher_reports_changes():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "test.db"))
        changes = []
        watcher = ConfigWatcher(db, poll_interval=0.05)
        watcher.add_watch(detection_enabled_key, lambda old, new: changes.append((old, new)))

        watcher.check_changes()
        assert changes == [], "no change yet"

        db.set_config(detection_enabled_key, '1')
        watcher.check_changes()
        watcher.check_changes()
        assert changes == [('0', '1')], "each change reported once"
        db.close()
    print("PASS test_config_watcher_reports_changes")


def test_config_watcher_survives_callback_error():
    with tempfile.TemporaryDirectory() as tmp:
        db = DatabaseManager(os.path.join(tmp, "test.db"))
        watcher = ConfigWatcher(db)

        def broken(_old, _new):
            raise RuntimeError("boom")

        watcher.add_watch(detection_enabled_key, broken)
        db.set_config(detection_enabled_key, '1')
        watcher.check_changes()
        db.close()
    print("PASS test_config_watcher_survives_callback_error")


if __name__ == "__main__":
    test_blob_roundtrip_and_overwrite()
    test_default_config_values()
    test_config_watcher_reports_changes()
    test_config_watcher_survives_callback_error()
    print("\nAll database tests passed!")
