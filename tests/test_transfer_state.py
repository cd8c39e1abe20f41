from datetime import datetime, timedelta, timezone

from fdfsmigrate.models.transfer_state import ChunkState, TransferState, TransferStatus


def _state():
    return TransferState(
        total_size=1000,
        transferred_size=600,
        status=TransferStatus.RUNNING,
        chunk_states=[
            ChunkState(index=0, completed=True),
            ChunkState(index=1, completed=True),
            ChunkState(index=2, completed=False),
            ChunkState(index=3, completed=False),
        ],
        created_at=datetime.now() - timedelta(minutes=1),
    )


def test_progress():
    assert TransferState(total_size=1000, transferred_size=500).progress() == 50.0


def test_progress_zero_total():
    assert TransferState(transferred_size=5).progress() == 0.0


def test_completed_chunks():
    state = TransferState(
        chunk_states=[
            ChunkState(index=0, completed=True),
            ChunkState(index=1, completed=False),
            ChunkState(index=2, completed=True),
        ]
    )
    assert state.completed_chunks() == 2


def test_counts_and_status_checks():
    state = _state()
    assert state.total_chunks() == 4
    assert state.remaining_size() == 400
    assert state.is_running()

    state.status = TransferStatus.COMPLETED
    assert state.is_completed()
    assert not state.can_resume()

    state.status = TransferStatus.FAILED
    assert state.is_failed()
    assert state.can_resume()

    state.status = TransferStatus.PAUSED
    assert state.can_resume()


def test_next_incomplete_chunk_and_update():
    state = _state()
    chunk = state.next_incomplete_chunk()
    assert chunk.index == 2

    state.update_chunk_state(2, True, "checksum123")
    assert state.chunk_states[2].completed is True
    assert state.chunk_states[2].checksum == "checksum123"
    assert state.next_incomplete_chunk().index == 3


def test_next_incomplete_chunk_is_live_object():
    state = _state()
    state.next_incomplete_chunk().completed = True
    assert state.chunk_states[2].completed is True


def test_next_incomplete_chunk_none_when_all_done():
    state = TransferState(chunk_states=[ChunkState(index=0, completed=True)])
    assert state.next_incomplete_chunk() is None


def test_update_chunk_state_keeps_checksum_and_ignores_bad_index():
    state = TransferState(chunk_states=[ChunkState(index=0, checksum="old")])
    state.update_chunk_state(0, True, "")
    assert state.chunk_states[0] == ChunkState(index=0, completed=True, checksum="old")
    state.update_chunk_state(-1, False)
    state.update_chunk_state(5, False)
    assert state.chunk_states[0].completed is True


def test_progress_string():
    state = _state()
    state.update_chunk_state(2, True)
    assert state.progress_string() == "60.00% (3/4 chunks)"


def test_speed_and_eta():
    state = _state()
    speed = state.transfer_speed()
    assert 0 < speed <= 10.0
    eta = state.estimated_time_remaining()
    assert timedelta(seconds=39) <= eta <= timedelta(seconds=40)


def test_speed_with_aware_created_at():
    state = TransferState(
        transferred_size=100,
        created_at=datetime.now(timezone.utc) - timedelta(seconds=10),
    )
    assert 0 < state.transfer_speed() <= 10.0


def test_speed_zero_without_created_at():
    state = TransferState(total_size=10, transferred_size=5)
    assert state.transfer_speed() == 0.0
    assert state.estimated_time_remaining() == timedelta(0)


def test_touch_sets_last_update():
    state = TransferState()
    before = datetime.now()
    state.touch()
    assert before <= state.last_update <= datetime.now()


def test_dict_round_trip():
    state = TransferState(
        id="1_bb",
        task_id="test-task-id",
        file_id="test-file-id",
        file_path="/test/file/path",
        total_size=1024,
        transferred_size=512,
        chunk_size=256,
        status=TransferStatus.RUNNING,
        chunk_states=[
            ChunkState(index=0, offset=0, size=256, completed=True, checksum="abc123"),
            ChunkState(index=1, offset=256, size=256, completed=False),
        ],
        checksum="def456",
        created_at=datetime(2024, 2, 2, 2, 2, 2),
    )
    data = state.to_dict()
    assert "checksum" not in data["chunk_states"][1]
    assert data["chunk_states"][0]["checksum"] == "abc123"
    assert TransferState.from_dict(data) == state