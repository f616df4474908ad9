"""Tests for cli.py - command-line interface."""

import json
import sys
from unittest.mock import patch

import pytest

from framenote.cli import main, resolve_video_id
from framenote.hashing import hash_file


@pytest.fixture
def cli_env(api, controller, temp_dir, monkeypatch):
    """Point the CLI at the in-process server with the signed-in user."""
    monkeypatch.setenv("FRAMENOTE_HOME", str(temp_dir / "home"))
    with patch("framenote.api_client.AnnotationApiClient", return_value=api):
        yield controller


class TestMainArgParsing:
    """Tests for main CLI argument parsing."""

    def test_no_command_prints_help(self, capsys):
        """No command should print help."""
        with patch.object(sys, 'argv', ['framenote']):
            main()

        captured = capsys.readouterr()
        assert "FrameNote" in captured.out or "usage" in captured.out.lower()

    def test_version_flag(self):
        """--version flag should print version and exit."""
        with patch.object(sys, 'argv', ['framenote', '--version']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 0

    def test_annotations_without_subcommand(self, capsys):
        with patch.object(sys, 'argv', ['framenote', 'annotations']):
            main()
        assert "list" in capsys.readouterr().out


class TestServeCommand:
    """Tests for the serve command."""

    def test_serve_runs_server(self, temp_dir):
        """Serve passes host, port and database through."""
        db = temp_dir / "api.db"
        with patch.object(sys, 'argv', ['framenote', 'serve', '--port', '4000', '--db', str(db)]):
            with patch('framenote.config.check_dependencies', return_value=True):
                with patch('framenote.server.run_server') as mock_run:
                    main()
        mock_run.assert_called_once_with(host="127.0.0.1", port=4000, db_path=db)

    def test_serve_missing_dependencies(self):
        with patch.object(sys, 'argv', ['framenote', 'serve']):
            with patch('framenote.config.check_dependencies', return_value=False):
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 1


class TestHashCommand:
    """Tests for the hash command."""

    def test_prints_identity(self, video_file, capsys):
        with patch.object(sys, 'argv', ['framenote', 'hash', str(video_file)]):
            main()
        assert capsys.readouterr().out.strip() == hash_file(video_file)

    def test_missing_file_exits(self, temp_dir):
        with patch.object(sys, 'argv', ['framenote', 'hash', str(temp_dir / "nope.mp4")]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1


class TestResolveVideoId:
    """Tests for turning a video argument into an identity."""

    def test_file_is_hashed(self, video_file):
        assert resolve_video_id(str(video_file)) == hash_file(video_file)

    def test_identity_accepted(self):
        assert resolve_video_id("AB" * 32) == "ab" * 32

    def test_garbage_exits(self):
        with pytest.raises(SystemExit):
            resolve_video_id("not-a-video")


class TestAnnotationsCommands:
    """Tests for annotations subcommands against the in-process server."""

    def test_list(self, cli_env, video_file, capsys):
        cli_env.open_video(video_file, duration=60.0)
        cli_env.seek(5.0)
        cli_env.submit_comment("Intro is too long")

        with patch.object(sys, 'argv', ['framenote', 'annotations', 'list', str(video_file)]):
            main()
        err = capsys.readouterr().err
        assert "Intro is too long" in err
        assert "Ada" in err

    def test_export_then_import_other_video(self, cli_env, video_file, other_video_file, temp_dir):
        cli_env.open_video(video_file, duration=60.0)
        cli_env.submit_comment("carry me over")
        output = temp_dir / "notes.json"

        with patch.object(sys, 'argv', ['framenote', 'annotations', 'export', str(video_file), '-o', str(output)]):
            main()
        assert json.loads(output.read_text())["videoHash"] == hash_file(video_file)

        argv = ['framenote', 'annotations', 'import', str(output), '--video', str(other_video_file), '--yes']
        with patch.object(sys, 'argv', argv):
            main()
        assert [a.text for a in cli_env.api.list_annotations(hash_file(other_video_file))] == ["carry me over"]

    def test_import_declined_exits(self, cli_env, video_file, other_video_file, temp_dir):
        cli_env.open_video(video_file, duration=60.0)
        cli_env.submit_comment("stay here")
        output = cli_env.export_annotations(temp_dir / "notes.json")

        argv = ['framenote', 'annotations', 'import', str(output), '--video', str(other_video_file)]
        with patch.object(sys, 'argv', argv):
            with patch('builtins.input', return_value="n"):
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 1
        assert cli_env.api.list_annotations(hash_file(other_video_file)) == []

    def test_import_empty_export_succeeds(self, cli_env, video_file, temp_dir):
        """Importing nothing is not an error."""
        cli_env.open_video(video_file, duration=60.0)
        output = cli_env.export_annotations(temp_dir / "empty.json")

        argv = ['framenote', 'annotations', 'import', str(output), '--video', str(video_file)]
        with patch.object(sys, 'argv', argv):
            main()
        assert cli_env.api.list_annotations(hash_file(video_file)) == []

    def test_clear_with_yes(self, cli_env, video_file):
        cli_env.open_video(video_file, duration=60.0)
        cli_env.submit_comment("a")
        cli_env.submit_comment("b")

        with patch.object(sys, 'argv', ['framenote', 'annotations', 'clear', str(video_file), '-y']):
            main()
        assert cli_env.api.list_annotations(hash_file(video_file)) == []

    def test_no_user_exits(self, api, temp_dir, video_file, monkeypatch):
        """Commands that need a user fail until one is created."""
        monkeypatch.setenv("FRAMENOTE_HOME", str(temp_dir / "empty"))
        with patch("framenote.api_client.AnnotationApiClient", return_value=api):
            with patch.object(sys, 'argv', ['framenote', 'annotations', 'list', str(video_file)]):
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 1


class TestUserCommands:
    """Tests for user subcommands."""

    def test_create_and_whoami(self, api, temp_dir, monkeypatch, capsys):
        monkeypatch.setenv("FRAMENOTE_HOME", str(temp_dir / "fresh"))
        with patch("framenote.api_client.AnnotationApiClient", return_value=api):
            with patch.object(sys, 'argv', ['framenote', 'user', 'create', 'Grace']):
                main()
            with patch.object(sys, 'argv', ['framenote', 'user', 'whoami']):
                main()
        assert "Grace" in capsys.readouterr().err

    def test_create_blank_name(self, api, temp_dir, monkeypatch):
        monkeypatch.setenv("FRAMENOTE_HOME", str(temp_dir / "fresh"))
        with patch("framenote.api_client.AnnotationApiClient", return_value=api):
            with patch.object(sys, 'argv', ['framenote', 'user', 'create', '  ']):
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 1


class TestSuggestCommand:
    """Tests for the suggest command."""

    def test_inverted_range_exits(self, temp_dir, sample_vtt):
        path = temp_dir / "talk.vtt"
        path.write_text(sample_vtt, encoding="utf-8")
        argv = ['framenote', 'suggest', '-s', str(path), '--start', '10', '--end', '2']
        with patch.object(sys, 'argv', argv):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1

    def test_suggest_uses_gemini(self, temp_dir, sample_vtt, mock_gemini_client,
                                 sample_gemini_suggestions_response, capsys):
        path = temp_dir / "talk.vtt"
        path.write_text(sample_vtt, encoding="utf-8")
        client = mock_gemini_client(sample_gemini_suggestions_response)

        argv = ['framenote', 'suggest', '-s', str(path), '--start', '1', '--end', '8']
        with patch.object(sys, 'argv', argv):
            with patch('framenote.config.load_api_key', return_value="test-key"):
                with patch('framenote.config.get_gemini_client', return_value=client):
                    main()

        err = capsys.readouterr().err
        assert "[MEME]" in err and "[ILLUSTRATION]" in err
        assert "Today we look at timelines." in client.models.calls[0][1]
