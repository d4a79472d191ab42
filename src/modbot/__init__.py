"""ModBot: automated moderation and curation for Farcaster channels."""

__version__ = "0.1.0"
