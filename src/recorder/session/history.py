"""
Session History
Newest-first list of completed attempts for the current process.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from ..models import AttemptRecord, AttemptStatus
from ..recording.encoder import MjpegEncoder

logger = logging.getLogger(__name__)


class SessionHistory:
    """History sink for AttemptRecords.

    The session controller only ever calls append(); everything else is for
    the surrounding application.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[AttemptRecord] = []

    def append(self, record: AttemptRecord) -> None:
        with self._lock:
            self._records.insert(0, record)
        logger.info(f"Attempt {record.id}: score={record.score} status={record.status.value}")

    @property
    def records(self) -> List[AttemptRecord]:
        """Snapshot of all records, newest first."""
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def summary(self) -> Dict:
        """
        Count attempts by status.

        Returns:
            Dictionary with 'total_attempts', per-status counts and 'best_score'
        """
        records = self.records
        counts = {status.value: 0 for status in AttemptStatus}
        for record in records:
            counts[record.status.value] += 1

        scores = [r.score for r in records if r.score is not None]
        return {
            'total_attempts': len(records),
            'status_counts': counts,
            'best_score': max(scores) if scores else None
        }

    def export(self, output_dir: str, extension: str = MjpegEncoder.extension) -> Path:
        """
        Write retained media, thumbnails and an attempts index to disk.

        Args:
            output_dir: Directory to write into (created if missing)
            extension: File extension for recorded media

        Returns:
            Path to the attempts.json index
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        entries = []
        for record in self.records:
            entry = record.to_dict()
            stem = f"attempt_{record.timestamp.strftime('%Y%m%d_%H%M%S')}_{record.id[:8]}"

            if record.media:
                media_file = output_path / f"{stem}{extension}"
                media_file.write_bytes(record.media)
                entry['media_file'] = media_file.name

            if record.thumbnail:
                thumb_file = output_path / f"{stem}.png"
                thumb_file.write_bytes(record.thumbnail)
                entry['thumbnail_file'] = thumb_file.name

            entries.append(entry)

        index_path = output_path / 'attempts.json'
        with open(index_path, 'w') as f:
            json.dump({
                'export_timestamp': datetime.now().isoformat(),
                'summary': self.summary(),
                'attempts': entries
            }, f, indent=2)

        return index_path
