"""
Verified Channel Allow-List

Channels treated as authoritative when picking between highlight
candidates (league, broadcasters, team channels).
"""

from typing import Callable, Iterable, Optional

from ..config import Settings, get_settings

VerifiedPredicate = Callable[[str, str], bool]


class VerifiedChannels:
    """
    Callable predicate over (channel_id, channel_title).

    A channel is verified when its id is on the allow-list, or when its
    title contains one of the allowed names (case-sensitive, so "BR"
    does not match "Brooklyn").
    """

    def __init__(self, channel_ids: Iterable[str] = (), channel_names: Iterable[str] = ()):
        self.channel_ids = frozenset(channel_ids)
        self.channel_names = tuple(name for name in channel_names if name)

    def __call__(self, channel_id: str, channel_title: str) -> bool:
        if channel_id in self.channel_ids:
            return True
        title = channel_title or ""
        return any(name in title for name in self.channel_names)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "VerifiedChannels":
        settings = settings or get_settings()
        return cls(settings.verified_channel_ids, settings.verified_channel_names)
