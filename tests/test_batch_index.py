"""Tests for the upload log and batch grouping."""

import threading
from datetime import datetime, timedelta, timezone

from common.types import CompletedUpload
from receiver.batch_index import UploadLog, build_batches, files_for_batch

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_upload(name, batch_id, offset_seconds, size=10):
    return CompletedUpload(
        transfer_id=f"trans_{name}",
        batch_id=batch_id,
        name=name,
        size=size,
        uploaded_at=BASE_TIME + timedelta(seconds=offset_seconds),
    )


class TestUploadLog:

    def test_snapshot_is_a_copy(self):
        log = UploadLog()
        log.append(make_upload("a.txt", "batch_1", 0))

        snapshot = log.snapshot()
        snapshot.clear()

        assert len(log) == 1

    def test_concurrent_appends(self):
        log = UploadLog()

        def worker(n):
            for i in range(100):
                log.append(make_upload(f"{n}_{i}.txt", f"batch_{n}", i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(log) == 400


class TestBuildBatches:

    def test_empty_log(self):
        assert build_batches([]) == []

    def test_groups_by_batch_id(self):
        uploads = [
            make_upload("one.txt", "batch_1", 0),
            make_upload("solo.txt", "single_trans_x", 5),
            make_upload("two.txt", "batch_1", 10),
        ]

        batches = build_batches(uploads)

        assert [b.batch_id for b in batches] == ["batch_1", "single_trans_x"]
        assert [f.name for f in batches[0].files] == ["one.txt", "two.txt"]
        assert [f.name for f in batches[1].files] == ["solo.txt"]

    def test_batch_time_is_last_member(self):
        uploads = [
            make_upload("one.txt", "batch_1", 0),
            make_upload("two.txt", "batch_1", 30),
        ]

        batch = build_batches(uploads)[0]

        assert batch.uploaded_at == BASE_TIME + timedelta(seconds=30)

    def test_newest_batch_first(self):
        uploads = [
            make_upload("old.txt", "batch_old", 0),
            make_upload("new.txt", "batch_new", 100),
            make_upload("mid.txt", "batch_mid", 50),
        ]

        assert [b.batch_id for b in build_batches(uploads)] == ["batch_new", "batch_mid", "batch_old"]

    def test_members_sorted_ascending(self):
        uploads = [
            make_upload("late.txt", "batch_1", 20),
            make_upload("early.txt", "batch_1", 10),
        ]

        assert [f.name for f in build_batches(uploads)[0].files] == ["early.txt", "late.txt"]

    def test_equal_timestamps_keep_completion_order(self):
        uploads = [
            make_upload("first.txt", "batch_a", 0),
            make_upload("second.txt", "batch_b", 0),
            make_upload("third.txt", "batch_a", 0),
        ]

        batches = build_batches(uploads)

        assert [b.batch_id for b in batches] == ["batch_a", "batch_b"]
        assert [f.name for f in batches[0].files] == ["first.txt", "third.txt"]

    def test_checksum_carried_through(self):
        upload = CompletedUpload(
            transfer_id="trans_1",
            batch_id="batch_1",
            name="a.txt",
            size=1,
            uploaded_at=BASE_TIME,
            checksum="ab" * 32,
        )

        assert build_batches([upload])[0].files[0].checksum == "ab" * 32


class TestFilesForBatch:

    def test_unknown_batch(self):
        assert files_for_batch([make_upload("a.txt", "batch_1", 0)], "batch_2") == []

    def test_returns_members_in_upload_order(self):
        uploads = [
            make_upload("b.txt", "batch_1", 5),
            make_upload("other.txt", "batch_2", 1),
            make_upload("a.txt", "batch_1", 2),
        ]

        files = files_for_batch(uploads, "batch_1")

        assert [f.name for f in files] == ["a.txt", "b.txt"]
        assert all(f.size == 10 for f in files)
