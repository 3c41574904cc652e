"""
Unit tests for main.py CLI entry point.

Tests command-line argument parsing and routing.
"""

import json

import cv2
import pytest
from pathlib import Path
from unittest.mock import patch

import main
from conftest import FakeSource, build_end_screen, build_gameplay_frame, to_bgr
from src.recorder.models import ClassificationResult, DetectionMode


@pytest.mark.unit
class TestMainCLI:
    """Test suite for main.py CLI functionality."""

    def test_get_output_path_explicit(self):
        """Test get_output_path with explicit output."""
        result = main.get_output_path(
            input_path="gameplay.mp4",
            suffix="_scan.json",
            explicit_output="custom/path.json"
        )

        assert result == "custom/path.json"

    def test_get_output_path_default(self, tmp_path, monkeypatch):
        """Test get_output_path with default output directory."""
        monkeypatch.chdir(tmp_path)

        result = main.get_output_path(
            input_path="gameplay.mp4",
            suffix="_scan.json",
            explicit_output=None
        )

        assert result.startswith("output")
        assert "gameplay_scan_" in result
        assert result.endswith(".json")
        assert Path("output").exists()

    def test_get_output_path_directory_suffix(self, tmp_path, monkeypatch):
        """Suffixes without an extension get the timestamp appended."""
        monkeypatch.chdir(tmp_path)

        result = main.get_output_path("device0", "_session")

        assert Path(result).name.startswith("device0_session_")

    def test_ensure_output_dir(self, tmp_path):
        """Test ensure_output_dir creates necessary directories."""
        output_path = tmp_path / "nested" / "dir" / "output.json"

        main.ensure_output_dir(str(output_path))

        assert output_path.parent.exists()

    def test_main_no_args(self):
        """Test main with no arguments shows help."""
        assert main.main([]) == 1

    def test_main_help(self):
        """Test main with --help flag."""
        with pytest.raises(SystemExit) as exc_info:
            main.main(['--help'])

        assert exc_info.value.code == 0

    @pytest.mark.parametrize("command", [
        "monitor",
        "classify-frame",
        "scan-video"
    ])
    def test_command_help(self, command):
        """Test that all commands have help."""
        with pytest.raises(SystemExit) as exc_info:
            main.main([command, '--help'])

        assert exc_info.value.code == 0

    def test_invalid_mode_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            main.main(['monitor', '0', '--mode', 'psychic'])

        assert exc_info.value.code == 2

    @patch('main.cmd_scan_video')
    def test_handler_exception_returns_1(self, mock_cmd, capsys):
        mock_cmd.side_effect = ValueError("Could not open video: missing.mp4")

        exit_code = main.main(['scan-video', 'missing.mp4'])

        assert exit_code == 1
        assert "Could not open video" in capsys.readouterr().err

    @patch('main.cmd_monitor')
    def test_keyboard_interrupt_returns_130(self, mock_cmd):
        mock_cmd.side_effect = KeyboardInterrupt

        assert main.main(['monitor', '0']) == 130


@pytest.mark.unit
class TestMonitorCommand:
    """Test suite for monitor command."""

    @patch('main.cmd_monitor')
    def test_monitor_defaults(self, mock_cmd):
        mock_cmd.return_value = 0

        exit_code = main.main(['monitor', '0'])

        assert exit_code == 0
        args = mock_cmd.call_args[0][0]
        assert args.source == '0'
        assert args.mode == 'remote'
        assert args.duration is None
        assert args.no_realtime is False

    @patch('main.cmd_monitor')
    def test_monitor_options(self, mock_cmd):
        mock_cmd.return_value = 0

        main.main([
            'monitor', 'gameplay.mp4',
            '--mode', 'local',
            '-o', 'out/session',
            '--duration', '30',
            '--no-realtime'
        ])

        args = mock_cmd.call_args[0][0]
        assert args.mode == 'local'
        assert args.output == 'out/session'
        assert args.duration == 30.0
        assert args.no_realtime is True

    def test_monitor_capture_error(self, tmp_path, capsys):
        source = FakeSource(fail_open=True)

        with patch('src.recorder.utils.VideoSource', return_value=source):
            exit_code = main.main(['monitor', '0', '--mode', 'local', '-o', str(tmp_path / "session")])

        assert exit_code == 1
        assert "Permission denied" in capsys.readouterr().err

    def test_monitor_runs_until_duration(self, tmp_path, capsys):
        source = FakeSource(build_gameplay_frame())

        with patch('src.recorder.utils.VideoSource', return_value=source):
            exit_code = main.main([
                'monitor', '0', '--mode', 'local',
                '--duration', '0.1',
                '-o', str(tmp_path / "session")
            ])

        assert exit_code == 0
        assert source.closed is True
        assert "Session complete" in capsys.readouterr().out


@pytest.mark.unit
class TestClassifyFrameCommand:
    """Test suite for classify-frame command."""

    @pytest.fixture
    def end_screen_png(self, tmp_path):
        path = tmp_path / "end_screen.png"
        cv2.imwrite(str(path), to_bgr(build_end_screen()))
        return path

    def test_classify_end_screen(self, end_screen_png, capsys):
        exit_code = main.main(['classify-frame', str(end_screen_png)])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output['mode'] == 'local'
        assert output['result'] == {'is_game_over': True, 'score': None, 'confidence': 1.0}
        assert 'analysis' not in output

    def test_classify_debug(self, end_screen_png, capsys):
        main.main(['classify-frame', str(end_screen_png), '--debug'])

        output = json.loads(capsys.readouterr().out)
        assert output['analysis']['has_ribbon'] is True
        assert output['analysis']['blue_rows'] == 54

    @patch('src.recorder.detection.build_classifier')
    def test_classify_remote_uses_classifier_factory(self, mock_build, end_screen_png, capsys):
        mock_build.return_value.classify.return_value = ClassificationResult(
            is_game_over=True, score=51, confidence=0.9
        )

        exit_code = main.main([
            'classify-frame', str(end_screen_png),
            '--mode', 'remote',
            '--model', 'gpt-4o-mini'
        ])

        assert exit_code == 0
        mock_build.assert_called_once_with(DetectionMode.REMOTE, model='gpt-4o-mini')
        assert json.loads(capsys.readouterr().out)['result']['score'] == 51

    def test_classify_missing_image(self, tmp_path):
        assert main.main(['classify-frame', str(tmp_path / "nope.png")]) == 1


@pytest.mark.unit
class TestScanVideoCommand:
    """Test suite for scan-video command."""

    @patch('src.recorder.detection.scan_video_for_game_over')
    def test_scan_video_writes_json(self, mock_scan, tmp_path):
        mock_scan.return_value = [
            {'timestamp': 12.0, 'score': None, 'confidence': 1.0, 'end_screen_seconds': 3.0}
        ]
        output_path = tmp_path / "scan.json"

        exit_code = main.main([
            'scan-video', 'gameplay.mp4',
            '-o', str(output_path),
            '--interval', '0.5'
        ])

        assert exit_code == 0
        assert mock_scan.call_args.kwargs['interval_seconds'] == 0.5
        with open(output_path) as f:
            data = json.load(f)
        assert data['video_path'] == 'gameplay.mp4'
        assert data['summary']['end_screens_detected'] == 1
        assert data['events'][0]['timestamp'] == 12.0
