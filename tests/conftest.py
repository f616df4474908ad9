"""Shared fixtures for framenote tests."""

import json
import shutil
import tempfile
from http import HTTPStatus
from pathlib import Path
from urllib.parse import urlsplit

import pytest

from framenote.api_client import AnnotationApiClient
from framenote.controller import AppController, Notifier
from framenote.server import create_app
from framenote.session import UserCache

API_BASE = "http://testserver/api"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    dirpath = tempfile.mkdtemp()
    yield Path(dirpath)
    shutil.rmtree(dirpath)


@pytest.fixture
def video_file(temp_dir):
    """A small fake video file (hashed in full)."""
    path = temp_dir / "talk.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + bytes(range(256)) * 64)
    return path


@pytest.fixture
def other_video_file(temp_dir):
    path = temp_dir / "other.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypisom" + bytes(reversed(range(256))) * 64)
    return path


@pytest.fixture
def sample_vtt():
    """WebVTT caption track with markup and an empty cue."""
    return """WEBVTT

1
00:00:01.000 --> 00:00:04.000
Welcome to the <b>demo</b>.

2
00:00:04.500 --> 00:00:08.000 align:start
Today we look at timelines.

3
00:00:09.000 --> 00:00:10.000
<i></i>

4
00:01:05.250 --> 00:01:09.000
Thanks for watching!
"""


@pytest.fixture
def sample_srt():
    """The same captions as SubRip."""
    return """1
00:00:01,000 --> 00:00:04,000
Welcome to the demo.

2
00:00:04,500 --> 00:00:08,000
Today we look at timelines.
"""


@pytest.fixture
def sample_gemini_suggestions_response():
    """Sample Gemini answer in the option format."""
    return """Here are three visual options:

**Option 1: [Type - MEME]**
- Visual Description: The "this is fine" dog sitting calmly while the timeline burns.

**Option 2: [Type - ANIMATION]**
- Visual Description: A playhead glides across a track, leaving colored range bars behind it.

**Option 3: [Type - ILLUSTRATION]**
- Visual Description: A labelled diagram of a zoomable timeline with handles.
"""


@pytest.fixture
def mock_gemini_client():
    """Mock Gemini client for testing without API calls."""
    class MockResponse:
        def __init__(self, text):
            self._text = text

        @property
        def text(self):
            return self._text

    class MockModels:
        def __init__(self, response_text):
            self.response_text = response_text
            self.calls = []

        def generate_content(self, model, contents):
            self.calls.append((model, contents))
            return MockResponse(self.response_text)

    class MockClient:
        def __init__(self, response_text=""):
            self.models = MockModels(response_text)

    return MockClient


class RecordingNotifier(Notifier):
    """Notifier that records messages and answers confirmations from a flag."""

    def __init__(self, confirm_answer=True):
        self.alerts = []
        self.confirms = []
        self.infos = []
        self.confirm_answer = confirm_answer

    def alert(self, message):
        self.alerts.append(message)

    def confirm(self, message):
        self.confirms.append(message)
        return self.confirm_answer

    def inform(self, message):
        self.infos.append(message)


@pytest.fixture
def notifier():
    return RecordingNotifier()


class FlaskResponse:
    """The parts of ``requests.Response`` the API client reads."""

    def __init__(self, response):
        self.status_code = response.status_code
        self.content = response.data
        self.reason = HTTPStatus(response.status_code).phrase

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


class FlaskSession:
    """Routes client requests into a Flask test client instead of the network."""

    def __init__(self, test_client):
        self.client = test_client
        self.requests = []

    def request(self, method, url, timeout=None, json=None, **kwargs):
        path = urlsplit(url).path
        self.requests.append((method, path, json))
        return FlaskResponse(self.client.open(path, method=method, json=json))


@pytest.fixture
def app(temp_dir):
    """Annotation API app on a throwaway database."""
    app = create_app(db_path=temp_dir / "test.db")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api(app):
    """HTTP client talking to the in-process server."""
    return AnnotationApiClient(base_url=API_BASE, timeout=5, session=FlaskSession(app.test_client()))


@pytest.fixture
def user_cache(temp_dir):
    return UserCache(temp_dir / "home")


@pytest.fixture
def controller(api, notifier, user_cache):
    """Signed-in controller backed by the in-process server."""
    controller = AppController(api, notifier=notifier, user_cache=user_cache)
    controller.onboard("Ada")
    return controller
