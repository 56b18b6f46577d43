"""
Tests for the status file writer and reader.
"""


class TestStatusWriter:
    """Atomic status file output."""

    def test_write_and_read(self, tmp_path):
        from supply_countdown.interfaces.countdown_result import CountdownResult
        from supply_countdown.output.status_writer import StatusReader, StatusWriter

        path = tmp_path / "status.json"
        writer = StatusWriter(str(path))
        result = CountdownResult(feed_status="OK", current_height=870_000, target_height=939_999)

        assert writer.write(result) is True
        assert writer.write_count == 1

        restored = StatusReader(str(path)).read()
        assert restored.current_height == 870_000
        assert restored.feed_status == "OK"

    def test_no_temp_files_left(self, tmp_path):
        from supply_countdown.interfaces.countdown_result import CountdownResult
        from supply_countdown.output.status_writer import StatusWriter

        writer = StatusWriter(str(tmp_path / "status.json"))
        for _ in range(3):
            writer.write(CountdownResult())

        assert [p.name for p in tmp_path.iterdir()] == ["status.json"]

    def test_creates_parent_directory(self, tmp_path):
        from supply_countdown.output.status_writer import StatusWriter

        path = tmp_path / "nested" / "dir" / "status.json"
        StatusWriter(str(path))
        assert path.parent.is_dir()

    def test_clear(self, tmp_path):
        from supply_countdown.interfaces.countdown_result import CountdownResult
        from supply_countdown.output.status_writer import StatusWriter

        path = tmp_path / "status.json"
        writer = StatusWriter(str(path))
        writer.write(CountdownResult())
        writer.clear()
        assert not path.exists()


class TestStatusReader:
    """Reading the status file."""

    def test_missing_file(self, tmp_path):
        from supply_countdown.output.status_writer import StatusReader

        reader = StatusReader(str(tmp_path / "missing.json"))
        assert reader.available is False
        assert reader.read() is None

    def test_invalid_json(self, tmp_path):
        from supply_countdown.output.status_writer import StatusReader

        path = tmp_path / "status.json"
        path.write_text("{not json")
        assert StatusReader(str(path)).read() is None
