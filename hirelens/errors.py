"""
hirelens/errors.py

Error taxonomy shared by the matching pipeline and the assistant.

- ProviderError:   network / timeout / quota failures from the inference provider
- ParseError:      model output that is not the JSON we asked for
- ValidationError: model output outside a closed set of allowed values
- InputError:      malformed job / resume input from the calling layer

Only InputError is allowed to reach the caller. Everything else is absorbed by
MatchPipeline and ConversationRouter and turned into a degraded result.
"""
from __future__ import annotations


class HirelensError(Exception):
    """Base class for all hirelens errors."""


class ProviderError(HirelensError):
    """Raised when an embedding or completion call fails (timeout, quota, network)."""


class ParseError(HirelensError):
    """Raised when a model response cannot be decoded into the expected shape."""


class ValidationError(HirelensError):
    """Raised when a model response falls outside a closed enumeration."""


class InputError(HirelensError):
    """Raised for structurally invalid input passed in by the caller."""
