"""
Backup Service - exports and restores the application state as JSON files.

Architecture Decision: Why JSON for backups?
- Human-readable format for easy inspection and manual edits
- Cross-platform compatible
- Same snapshot format as the persistence gateway, so a restore is a plain
  ``LoadState`` of the decoded state
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from focusflow.domain.models import AppState

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


class BackupService:
    """
    Handles backup (export) and restore (import) of the application state.

    Backup naming convention: focusflow_backup_YYYY-MM-DD_HHMMSS.json
    """

    BACKUP_PREFIX = "focusflow_backup_"
    BACKUP_EXTENSION = ".json"

    def __init__(self, backup_dir: Path):
        self.backup_dir = Path(backup_dir)

    def _get_backup_dir(self, custom_dir: Optional[str] = None) -> Path:
        """Get the backup directory, using custom or default"""
        if custom_dir and custom_dir.strip():
            backup_dir = Path(custom_dir)
        else:
            backup_dir = self.backup_dir
        backup_dir.mkdir(parents=True, exist_ok=True)
        return backup_dir

    def _generate_backup_filename(self, now: datetime) -> str:
        """Generate a timestamped backup filename"""
        timestamp = now.strftime("%Y-%m-%d_%H%M%S")
        return f"{self.BACKUP_PREFIX}{timestamp}{self.BACKUP_EXTENSION}"

    def _parse_backup_date(self, filename: str) -> Optional[datetime]:
        """Extract datetime from backup filename"""
        try:
            # Remove prefix and extension
            date_part = filename.replace(self.BACKUP_PREFIX, "").replace(self.BACKUP_EXTENSION, "")
            return datetime.strptime(date_part, "%Y-%m-%d_%H%M%S")
        except ValueError:
            return None

    def create_backup(self, state: AppState, backup_dir: Optional[str] = None,
                      now: Optional[datetime] = None) -> Path:
        """
        Write a full backup of the state.

        Args:
            state: The state to export
            backup_dir: Optional custom backup directory
            now: Timestamp used for the filename and header

        Returns:
            Path to the created backup file
        """
        now = now or datetime.now()
        backup_file = self._get_backup_dir(backup_dir) / self._generate_backup_filename(now)

        backup_data = {
            "version": BACKUP_VERSION,
            "created_at": now.isoformat(),
            "app_name": "FocusFlow",
            "data": state.model_dump(mode="json"),
        }

        with open(backup_file, 'w', encoding='utf-8') as f:
            json.dump(backup_data, f, indent=2, ensure_ascii=False)

        logger.info(f"Backup created: {backup_file}")
        return backup_file

    def restore_backup(self, backup_file: Path) -> AppState:
        """
        Read a state back from a backup file.

        The caller replaces the live state with a ``LoadState`` command.

        Raises:
            FileNotFoundError: if the file does not exist
            ValueError: if the file is not a valid backup
        """
        if not backup_file.exists():
            raise FileNotFoundError(f"Backup file not found: {backup_file}")

        with open(backup_file, 'r', encoding='utf-8') as f:
            try:
                backup_data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid backup file format: {e}") from e

        # Validate backup format
        if not isinstance(backup_data, dict) or "version" not in backup_data or "data" not in backup_data:
            raise ValueError("Invalid backup file format")

        try:
            state = AppState.model_validate(backup_data["data"])
        except ValidationError as e:
            raise ValueError(f"Backup data is not a valid state: {e}") from e

        logger.info(f"Backup restored from {backup_file.name}: {len(state.tasks)} tasks")
        return state

    def list_backups(self, backup_dir: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List all available backups in the backup directory.

        Returns:
            List of backup info dictionaries sorted by date (newest first)
        """
        backup_path = self._get_backup_dir(backup_dir)
        backups = []

        for file in backup_path.glob(f"{self.BACKUP_PREFIX}*{self.BACKUP_EXTENSION}"):
            backup_date = self._parse_backup_date(file.name)
            if backup_date:
                file_size = file.stat().st_size
                backups.append({
                    "filename": file.name,
                    "path": str(file),
                    "date": backup_date,
                    "size_bytes": file_size,
                    "size_human": self._format_size(file_size)
                })

        # Sort by date, newest first
        backups.sort(key=lambda x: x["date"], reverse=True)
        return backups

    def _format_size(self, size_bytes: int) -> str:
        """Format file size in human-readable format"""
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size_bytes < 1024:
                return f"{size_bytes:.1f} {unit}"
            size_bytes /= 1024
        return f"{size_bytes:.1f} TB"

    def cleanup_old_backups(self, backup_dir: Optional[str] = None, keep_count: int = 5) -> int:
        """
        Remove old backups, keeping only the most recent ones.

        Returns:
            Number of removed files
        """
        backups = self.list_backups(backup_dir)
        removed = 0

        for backup in backups[keep_count:]:
            try:
                Path(backup["path"]).unlink()
                removed += 1
                logger.info(f"Removed old backup: {backup['filename']}")
            except OSError as e:
                logger.warning(f"Failed to remove backup {backup['filename']}: {e}")
        return removed
