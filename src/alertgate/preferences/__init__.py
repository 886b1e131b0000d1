"""Preference domain — per-user channel and severity settings."""

from alertgate.models.domain import AlertPreference
from alertgate.models.domain import ChannelToggles
from alertgate.preferences.store import PreferenceStore

__all__ = ["AlertPreference", "ChannelToggles", "PreferenceStore"]
