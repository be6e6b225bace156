import asyncio
import io

import pytest

from app.core.exceptions import CleanupError, EngineTimeoutError, ProcessingError
from app.core.storage import RESULT_PREFIX
from app.services.intake import IntakeGate
from app.services.processing import ProcessingCoordinator

from conftest import FakeEngine, make_image_bytes, stored_names


def _upload(storage, name="cat.png"):
    gate = IntakeGate(storage, ("jpeg", "jpg", "png", "gif"))
    return asyncio.run(gate.accept(name, "image/png", io.BytesIO(make_image_bytes("PNG"))))


def _coordinator(storage, registry, engine, **kwargs):
    return ProcessingCoordinator(storage, engine, registry, **kwargs)


def test_success_writes_result_and_reclaims_original(storage, registry, engine):
    uploaded = _upload(storage)
    coordinator = _coordinator(storage, registry, engine)

    processed = asyncio.run(coordinator.process(uploaded))

    assert engine.calls == [uploaded.path]
    assert engine.input_existed == [True]
    assert processed.download_id.startswith(RESULT_PREFIX)
    assert processed.path.suffix == ".png"
    assert processed.path.read_bytes() == engine.result
    assert not uploaded.path.exists()
    assert stored_names(storage) == [processed.download_id]
    entry = registry.get(processed.download_id)
    assert entry is not None and not entry.consumed


def test_engine_failure_reclaims_original(storage, registry):
    uploaded = _upload(storage)
    coordinator = _coordinator(storage, registry, FakeEngine(error=RuntimeError("model crashed")))

    with pytest.raises(ProcessingError):
        asyncio.run(coordinator.process(uploaded))

    assert stored_names(storage) == []
    assert len(registry) == 0


def test_engine_failure_can_retain_original(storage, registry):
    uploaded = _upload(storage)
    coordinator = _coordinator(
        storage, registry, FakeEngine(error=RuntimeError("boom")), retain_failed_uploads=True
    )

    with pytest.raises(ProcessingError):
        asyncio.run(coordinator.process(uploaded))

    assert stored_names(storage) == [uploaded.path.name]


def test_engine_timeout(storage, registry):
    uploaded = _upload(storage)
    coordinator = _coordinator(storage, registry, FakeEngine(delay=5), timeout=0.05)

    with pytest.raises(EngineTimeoutError):
        asyncio.run(coordinator.process(uploaded))

    assert stored_names(storage) == []


def test_timeout_is_a_processing_error():
    assert issubclass(EngineTimeoutError, ProcessingError)


def test_empty_engine_result_fails(storage, registry):
    uploaded = _upload(storage)
    coordinator = _coordinator(storage, registry, FakeEngine(result=b""))

    with pytest.raises(ProcessingError):
        asyncio.run(coordinator.process(uploaded))

    assert stored_names(storage) == []


def test_result_write_failure_happens_before_original_is_deleted(storage, registry, engine, monkeypatch):
    uploaded = _upload(storage)
    original_existed = []

    def failing_write(make_name, data):
        original_existed.append(uploaded.path.exists())
        raise OSError("No space left on device")

    monkeypatch.setattr(storage, "write_bytes", failing_write)
    coordinator = _coordinator(storage, registry, engine)

    with pytest.raises(ProcessingError) as excinfo:
        asyncio.run(coordinator.process(uploaded))

    assert "saving" in excinfo.value.message
    assert original_existed == [True]
    assert len(registry) == 0


def test_cleanup_failure_does_not_fail_request(storage, registry, engine, monkeypatch):
    uploaded = _upload(storage)

    def failing_discard(path):
        raise CleanupError("permission denied")

    monkeypatch.setattr(storage, "discard", failing_discard)
    coordinator = _coordinator(storage, registry, engine)

    processed = asyncio.run(coordinator.process(uploaded))

    assert processed.path.exists()
    assert uploaded.path.exists()


def test_slow_request_does_not_block_others(storage, registry):
    slow = _coordinator(storage, registry, FakeEngine(delay=0.3))
    fast = _coordinator(storage, registry, FakeEngine())
    slow_upload = _upload(storage, "slow.png")
    fast_upload = _upload(storage, "fast.png")
    finished = []

    async def run(coordinator, uploaded, label):
        await coordinator.process(uploaded)
        finished.append(label)

    async def both():
        await asyncio.gather(run(slow, slow_upload, "slow"), run(fast, fast_upload, "fast"))

    asyncio.run(both())

    assert finished == ["fast", "slow"]
    assert len(stored_names(storage)) == 2
