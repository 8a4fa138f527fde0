# ==============================================================================
# REALTIME PACKAGE
# ==============================================================================
# Room registry and the chat WebSocket endpoint
# ==============================================================================

from agricsmart.realtime.manager import ConnectionManager

__all__ = ["ConnectionManager"]
