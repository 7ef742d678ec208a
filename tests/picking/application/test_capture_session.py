"""Tests for CaptureSession lifecycle, frame buffer and scoped acquisition."""

import pytest
from picking.capture.fake_adapter import FakeCamera
from picking.capture.port import StreamConstraints
from picking.capture.session import CaptureSession, CaptureSessionManager, CaptureStatus, scoped_capture
from picking.errors import DeviceUnavailable, InvalidState


@pytest.fixture()
def camera():
    return FakeCamera()


@pytest.fixture()
def session(camera):
    return CaptureSession(camera, step_key="tote")


class TestOpen:
    def test_open_streams(self, session, camera):
        assert session.open() == CaptureStatus.STREAMING
        assert session.device_handle in camera.active_handles
        assert session.is_streaming() is True

    def test_open_passes_constraints(self, session, camera):
        session.open(StreamConstraints(facing_mode="front", width=640, height=480))
        assert camera.calls[0]["facing_mode"] == "front"
        assert camera.calls[0]["width"] == 640

    def test_denied_open_raises_device_unavailable(self, session, camera):
        camera.configure(available=False, failure_reason="Permission denied")
        with pytest.raises(DeviceUnavailable) as exc:
            session.open()
        assert exc.value.reason == "Permission denied"
        assert session.status == CaptureStatus.ERROR
        assert session.error_reason == "Permission denied"
        assert session.device_handle is None

    def test_deferred_open_stays_requesting(self, session, camera):
        camera.configure(deferred=True)
        assert session.open() == CaptureStatus.REQUESTING
        camera.resolve_pending()
        assert session.status == CaptureStatus.STREAMING

    def test_deferred_denial_moves_to_error(self, session, camera):
        camera.configure(available=False, deferred=True)
        session.open()
        camera.resolve_pending()
        assert session.status == CaptureStatus.ERROR
        assert session.device_handle is None

    def test_open_while_requesting_is_ignored(self, session, camera):
        camera.configure(deferred=True)
        session.open()
        session.open()
        assert camera.pending_requests() == 1

    def test_reopen_while_streaming_releases_first(self, session, camera):
        session.open()
        first = session.device_handle
        session.open()
        assert first not in camera.active_handles
        assert session.device_handle in camera.active_handles
        assert len(camera.active_handles) == 1

    def test_status_listeners_follow_every_change(self, session, camera):
        seen = []
        session.on_status_change(lambda s: seen.append(s.status))
        camera.configure(deferred=True)
        session.open()
        camera.resolve_pending()
        session.close()
        assert seen == [CaptureStatus.REQUESTING, CaptureStatus.STREAMING, CaptureStatus.STOPPED]


class TestCapture:
    def test_capture_appends_frame(self, session):
        session.open()
        frame = session.capture()
        assert session.frames == [frame]
        assert frame.image_bytes.startswith(b"\xff\xd8")
        assert frame.captured_at is not None

    def test_no_frame_limit(self, session):
        session.open()
        for _ in range(25):
            session.capture()
        assert len(session.frames) == 25

    def test_capture_before_open(self, session):
        with pytest.raises(InvalidState):
            session.capture()

    def test_capture_while_requesting(self, session, camera):
        camera.configure(deferred=True)
        session.open()
        with pytest.raises(InvalidState):
            session.capture()

    def test_capture_after_close(self, session):
        session.open()
        session.close()
        with pytest.raises(InvalidState):
            session.capture()

    def test_frames_are_immutable(self, session):
        session.open()
        frame = session.capture()
        with pytest.raises(AttributeError):
            frame.image_bytes = b"other"


class TestDeleteFrames:
    def test_delete_frame_by_index(self, session):
        session.open()
        first, second, third = session.capture(), session.capture(), session.capture()
        assert session.delete_frame(1) == second
        assert session.frames == [first, third]

    def test_delete_last(self, session):
        session.open()
        first, second = session.capture(), session.capture()
        assert session.delete_last() == second
        assert session.frames == [first]

    @pytest.mark.parametrize("index", [-1, 1, 99])
    def test_delete_out_of_range_is_a_no_op(self, session, index):
        session.open()
        session.capture()
        assert session.delete_frame(index) is None
        assert len(session.frames) == 1

    def test_delete_last_on_empty_buffer_is_a_no_op(self, session):
        assert session.delete_last() is None

    def test_frames_cannot_be_edited_in_error(self, session, camera):
        camera.configure(available=False)
        with pytest.raises(DeviceUnavailable):
            session.open()
        with pytest.raises(InvalidState):
            session.delete_last()


class TestClose:
    def test_close_releases_handle(self, session, camera):
        session.open()
        session.close()
        assert session.status == CaptureStatus.STOPPED
        assert session.device_handle is None
        assert camera.active_handles == set()

    def test_close_is_idempotent(self, session, camera):
        session.open()
        session.close()
        releases = [c for c in camera.calls if c["method"] == "release"]
        session.close()
        assert session.status == CaptureStatus.STOPPED
        assert [c for c in camera.calls if c["method"] == "release"] == releases

    def test_close_never_opened_session(self, session):
        session.close()
        session.close()
        assert session.status == CaptureStatus.STOPPED

    def test_close_in_error_state(self, session, camera):
        camera.configure(available=False)
        with pytest.raises(DeviceUnavailable):
            session.open()
        session.close()
        assert session.status == CaptureStatus.STOPPED

    def test_close_while_requesting_releases_late_grant(self, session, camera):
        camera.configure(deferred=True)
        session.open()
        session.close()
        camera.resolve_pending()
        assert session.status == CaptureStatus.STOPPED
        assert session.device_handle is None
        assert camera.active_handles == set()

    def test_reopen_after_cancel_ignores_stale_grant(self, session, camera):
        camera.configure(deferred=True)
        session.open()
        session.close()
        session.open()
        camera.resolve_pending()
        assert session.status == CaptureStatus.STREAMING
        assert len(camera.active_handles) == 1


class TestReopen:
    def test_frames_are_retained_across_close_and_open(self, session):
        session.open()
        frame = session.capture()
        session.close()
        session.open()
        assert session.status == CaptureStatus.STREAMING
        assert session.frames == [frame]

    def test_explicit_clear_gives_an_empty_buffer(self, session):
        session.open()
        session.capture()
        session.close()
        session.clear_frames()
        session.open()
        assert session.status == CaptureStatus.STREAMING
        assert session.frames == []

    def test_reopen_is_a_fresh_acquisition(self, session, camera):
        session.open()
        first = session.device_handle
        session.close()
        session.open()
        assert session.device_handle != first
        assert len([c for c in camera.calls if c["method"] == "request_stream"]) == 2


class TestRetry:
    def test_retry_after_denial(self, session, camera):
        camera.configure(available=False)
        with pytest.raises(DeviceUnavailable):
            session.open(StreamConstraints(facing_mode="front"))
        camera.configure(available=True)
        assert session.retry() == CaptureStatus.STREAMING
        assert camera.calls[-1]["facing_mode"] == "front"

    def test_retry_only_valid_in_error(self, session):
        session.open()
        with pytest.raises(InvalidState):
            session.retry()


class TestScopedCapture:
    def test_session_closed_on_normal_exit(self, camera):
        with scoped_capture(camera, "tote") as session:
            session.capture()
        assert session.status == CaptureStatus.STOPPED
        assert camera.active_handles == set()

    def test_session_closed_when_block_raises(self, camera):
        with pytest.raises(RuntimeError):
            with scoped_capture(camera, "tote") as session:
                raise RuntimeError("worker navigated away")
        assert session.status == CaptureStatus.STOPPED
        assert camera.active_handles == set()

    def test_denied_open_propagates(self, camera):
        camera.configure(available=False)
        with pytest.raises(DeviceUnavailable):
            with scoped_capture(camera, "tote"):
                pass


class TestCaptureSessionManager:
    def test_one_session_per_step(self, camera):
        manager = CaptureSessionManager(camera)
        tote = manager.open("tote")
        assert manager.session_for("tote") is tote
        assert manager.active_keys() == ["tote"]

    def test_open_again_closes_prior_acquisition(self, camera):
        manager = CaptureSessionManager(camera)
        session = manager.open("tote")
        first = session.device_handle
        again = manager.open("tote")
        assert again is session
        assert first not in camera.active_handles
        assert len(camera.active_handles) == 1

    def test_failed_open_keeps_session_for_retry(self, camera):
        manager = CaptureSessionManager(camera)
        camera.configure(available=False)
        with pytest.raises(DeviceUnavailable):
            manager.open("shelf")
        assert manager.session_for("shelf").status == CaptureStatus.ERROR
        assert manager.active_keys() == []

    def test_close_drops_the_session(self, camera):
        manager = CaptureSessionManager(camera)
        manager.open("tote")
        manager.close("tote")
        manager.close("tote")
        assert manager.session_for("tote") is None
        assert camera.active_handles == set()

    def test_close_all(self, camera):
        manager = CaptureSessionManager(camera)
        manager.open("tote")
        manager.close_all()
        assert manager.active_keys() == []
        assert camera.active_handles == set()
