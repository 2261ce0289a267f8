# ==============================================
# SERIALIZATION
# ==============================================
#
# Modules:
# --------
# - event_codec.py  → Field list <-> JSON text for the `elements` column
#
# ==============================================

from .event_codec import EventCodec

__all__ = ["EventCodec"]
