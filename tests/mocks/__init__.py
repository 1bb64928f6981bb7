"""
Test doubles for external collaborators.
"""

from .mock_collaborators import RecordingEmailSender, RecordingMediaStorage

__all__ = [
    'RecordingEmailSender',
    'RecordingMediaStorage',
]
