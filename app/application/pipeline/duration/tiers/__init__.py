from .binary_scan import BinaryScanTier
from .playback_probe import PlaybackProbeTier
from .remote_fallback import RemoteFallbackTier

__all__ = ["BinaryScanTier", "PlaybackProbeTier", "RemoteFallbackTier"]
