"""
Session state model, validator and phase manager.

Models the breathing session as nested main/sub phases:
BREATHING → HOLD → RECOVER → (next round | COMPLETE).
"""
