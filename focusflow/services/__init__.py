"""Services layer - Business logic"""

from .command_processor import ProcessorContext, apply
from .focus_service import FocusService
from .access_gate import AccessGate
from .backup_service import BackupService

__all__ = ["ProcessorContext", "apply", "FocusService", "AccessGate", "BackupService"]
