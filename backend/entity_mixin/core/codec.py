"""
Reversible obfuscation of primary keys.

Internal ids are MongoDB ObjectIds. Externally only their hashids encoding is
exposed, so raw keys cannot be enumerated.
"""
from typing import Union

from bson import ObjectId
from hashids import Hashids

from entity_mixin.core.errors import ConfigurationError

INVALID_ID = ""


class IdCodec:
    """Encode and decode entity ids with a shared salt."""

    def __init__(self, salt: str, min_length: int = 0):
        if not salt:
            raise ConfigurationError("An id codec needs a non-empty salt")
        self._hashids = Hashids(salt=salt, min_length=min_length)

    def encode(self, internal_id: Union[ObjectId, str]) -> str:
        """
        Encode an internal id.

        Args:
            internal_id: ObjectId or its hex string form

        Returns:
            Obfuscated id, or INVALID_ID if the input is not hex
        """
        if isinstance(internal_id, ObjectId):
            internal_id = str(internal_id)
        return self._hashids.encode_hex(internal_id)

    def decode(self, external_id: str) -> str:
        """
        Decode an external id back to the internal hex string.

        Malformed input yields INVALID_ID instead of raising; callers treat it
        as "no such entity".
        """
        if not external_id or not isinstance(external_id, str):
            return INVALID_ID
        return self._hashids.decode_hex(external_id)

    def to_object_id(self, external_id: str) -> Union[ObjectId, None]:
        """Decode an external id into an ObjectId, or None if it is unusable."""
        internal = self.decode(external_id)
        if not ObjectId.is_valid(internal):
            return None
        return ObjectId(internal)
