"""
Unit tests for SessionHistory.
"""

import json
from datetime import datetime

import pytest

from src.recorder.models import AttemptRecord, AttemptStatus
from src.recorder.session import SessionHistory


def make_record(n, score, status, media=None, thumbnail=None):
    return AttemptRecord(
        id=f"{n:032x}",
        timestamp=datetime(2025, 1, 11, 14, 30, n),
        score=score,
        status=status,
        media=media,
        thumbnail=thumbnail
    )


@pytest.fixture
def populated_history():
    history = SessionHistory()
    history.append(make_record(1, 50, AttemptStatus.SAVED, media=b"jpegs", thumbnail=b"png1"))
    history.append(make_record(2, 12, AttemptStatus.DISCARDED, thumbnail=b"png2"))
    history.append(make_record(3, None, AttemptStatus.MANUAL_REVIEW, media=b"more"))
    return history


@pytest.mark.unit
class TestSessionHistory:
    """Test suite for SessionHistory class."""

    def test_newest_first(self, populated_history):
        assert [r.id[-1] for r in populated_history.records] == ['3', '2', '1']
        assert len(populated_history) == 3

    def test_records_is_a_copy(self, populated_history):
        populated_history.records.clear()

        assert len(populated_history) == 3

    def test_clear(self, populated_history):
        populated_history.clear()

        assert len(populated_history) == 0
        assert populated_history.summary()['total_attempts'] == 0

    def test_summary(self, populated_history):
        summary = populated_history.summary()

        assert summary == {
            'total_attempts': 3,
            'status_counts': {'saved': 1, 'discarded': 1, 'manual_review': 1, 'error': 0},
            'best_score': 50
        }

    def test_summary_empty(self):
        assert SessionHistory().summary()['best_score'] is None

    def test_export(self, populated_history, temp_output_dir):
        index_path = populated_history.export(str(temp_output_dir / "session"))

        assert index_path.name == "attempts.json"
        with open(index_path) as f:
            data = json.load(f)

        assert data['summary']['total_attempts'] == 3
        attempts = {a['id'][-1]: a for a in data['attempts']}
        assert attempts['1']['media_file'] == f"attempt_20250111_143001_{'0' * 8}.mjpeg"
        assert attempts['1']['media_bytes'] == 5
        assert 'media_file' not in attempts['2']
        assert attempts['2']['thumbnail_file'].endswith(".png")
        assert 'thumbnail_file' not in attempts['3']

        media = index_path.parent / attempts['3']['media_file']
        assert media.read_bytes() == b"more"

    def test_record_to_dict(self):
        record = make_record(4, 45, AttemptStatus.SAVED, media=b"abc")

        assert record.to_dict() == {
            'id': record.id,
            'timestamp': '2025-01-11T14:30:04',
            'score': 45,
            'status': 'saved',
            'media_bytes': 3,
            'thumbnail_bytes': None
        }
