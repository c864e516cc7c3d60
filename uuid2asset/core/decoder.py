"""
Decodes the compact 22-character identifiers used in bundle manifests back into
their canonical 36-character UUID form.
"""

from uuid2asset.exceptions import InvalidIdentifierError

_BASE64_KEYS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_INVALID = 64

# Characters outside the alphabet (including '=') map to the sentinel value
BASE64_VALUES = {char: value for value, char in enumerate(_BASE64_KEYS)}
HEX_CHARS = "0123456789abcdef"

COMPACT_LENGTH = 22
SHORT_LENGTH = 9
UUID_LENGTH = 36
_HYPHEN_POSITIONS = (8, 13, 18, 23)
# Output positions filled by nibbles, after the two raw leading characters
_NIBBLE_POSITIONS = tuple(
    i for i in range(2, UUID_LENGTH) if i not in _HYPHEN_POSITIONS
)


def _value_of(char: str, compact: str) -> int:
    value = BASE64_VALUES.get(char, _INVALID)
    if value == _INVALID:
        raise InvalidIdentifierError(
            f"Invalid character {char!r} in compact identifier '{compact}'."
        )
    return value


def decode_uuid(compact: str) -> str:
    """
    Expands a compact identifier into its canonical UUID string.

    The part after an optional '@' is kept verbatim. Identifiers in the 9-character
    short form, or of any length other than 22, are returned unchanged.

    Example:
        >>> decode_uuid("00AAAAAAAAAAAAAAAAAAAA")
        '00000000-0000-0000-0000-000000000000'
    """
    uuid_part, sep, suffix = compact.partition("@")
    # Short ids (SHORT_LENGTH) and unknown formats are already canonical
    if len(uuid_part) != COMPACT_LENGTH:
        return compact

    # A fresh buffer per call keeps decoding safe under concurrent use
    template = ["-"] * UUID_LENGTH
    template[0] = uuid_part[0]
    template[1] = uuid_part[1]

    j = 0
    for i in range(2, COMPACT_LENGTH, 2):
        lhs = _value_of(uuid_part[i], compact)
        rhs = _value_of(uuid_part[i + 1], compact)
        template[_NIBBLE_POSITIONS[j]] = HEX_CHARS[lhs >> 2]
        template[_NIBBLE_POSITIONS[j + 1]] = HEX_CHARS[((lhs & 3) << 2) | rhs >> 4]
        template[_NIBBLE_POSITIONS[j + 2]] = HEX_CHARS[rhs & 0xF]
        j += 3

    return "".join(template) + sep + suffix
