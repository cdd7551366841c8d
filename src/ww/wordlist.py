"""Mnemonic codec mapping pairing secrets to dictionary words.

Each byte maps to one word of a fixed 256-word list, so a two byte
secret reads as two words (``guitar-spark``). Decoding is case
insensitive and rejects unknown words and empty input.
"""

BITS_PER_WORD = 8

WORDS = (
    "acid", "acorn", "actor", "adobe", "agent", "alarm", "album", "alley",
    "amber", "angel", "ankle", "apple", "april", "arena", "armor", "arrow",
    "atlas", "attic", "audio", "award", "bacon", "badge", "bagel", "baker",
    "bamboo", "banjo", "barn", "basil", "beach", "beard", "bench", "berry",
    "bison", "blade", "blank", "blaze", "bloom", "board", "bonus", "boot",
    "brave", "bread", "brick", "bridge", "brook", "brush", "bucket", "buddy",
    "cabin", "cable", "cactus", "camel", "candy", "canoe", "canyon", "cargo",
    "carpet", "cedar", "chalk", "charm", "cherry", "chess", "chief", "cider",
    "cinema", "circus", "civic", "clamp", "cloud", "clover", "coast", "cobra",
    "cocoa", "comet", "coral", "cotton", "couch", "crane", "crayon", "cricket",
    "daisy", "dance", "delta", "denim", "depot", "desert", "diary", "dinner",
    "disco", "dolphin", "donkey", "dragon", "drum", "dune", "eagle", "easel",
    "echo", "elbow", "elder", "ember", "engine", "envoy", "epoch", "equal",
    "error", "event", "fable", "falcon", "fancy", "farm", "feather", "fence",
    "ferry", "fiber", "fiddle", "field", "flame", "flask", "fleet", "flint",
    "flute", "focus", "forest", "fossil", "fox", "frost", "fruit", "gadget",
    "galaxy", "garden", "garlic", "gecko", "ghost", "ginger", "glacier", "glove",
    "goat", "gold", "gorilla", "gospel", "gravel", "guitar", "habit", "hammer",
    "harbor", "harp", "hazel", "helmet", "hero", "hobby", "honey", "hornet",
    "hotel", "humor", "igloo", "index", "ink", "iris", "island", "ivory",
    "jacket", "jaguar", "jelly", "jewel", "jockey", "joker", "judge", "juice",
    "jungle", "kayak", "kernel", "kettle", "kidney", "kiosk", "kitten", "koala",
    "label", "ladder", "lagoon", "lantern", "laser", "lemon", "lens", "lily",
    "linen", "lion", "lizard", "lobster", "locket", "lotus", "lunar", "magnet",
    "mango", "maple", "marble", "meadow", "melon", "mentor", "meteor", "mint",
    "mirror", "mobile", "monkey", "mosaic", "motor", "muffin", "museum", "nectar",
    "needle", "nickel", "noble", "noodle", "north", "novel", "nugget", "oasis",
    "ocean", "olive", "onion", "opera", "orbit", "orchid", "otter", "oyster",
    "paddle", "palace", "panda", "paper", "parrot", "pepper", "piano", "pilot",
    "pixel", "planet", "plaza", "pocket", "polar", "poppy", "puzzle", "quartz",
    "rabbit", "radar", "radio", "raven", "reef", "ribbon", "rocket", "saddle",
    "salmon", "spark", "tiger", "tulip", "velvet", "walnut", "yacht", "zebra",
)

_INDEX = {word: i for i, word in enumerate(WORDS)}


def encode(data: bytes) -> list[str]:
    """Encode bytes as a list of words, one word per byte."""
    return [WORDS[b] for b in data]


def decode(words: list[str]) -> bytes:
    """Decode a list of words back into bytes.

    Raises:
        ValueError: If the list is empty or contains an unknown word.
    """
    if not words:
        raise ValueError("no words to decode")
    out = bytearray()
    for word in words:
        index = _INDEX.get(word.strip().lower())
        if index is None:
            raise ValueError(f"unknown word: {word!r}")
        out.append(index)
    return bytes(out)


class WordlistCodec:
    """Mnemonic codec backed by the module word list."""

    bits_per_word = BITS_PER_WORD

    def encode(self, data: bytes) -> list[str]:
        return encode(data)

    def decode(self, words: list[str]) -> bytes:
        return decode(words)

    def words_for(self, length: int) -> int:
        """Number of words a secret of ``length`` bytes encodes to."""
        return (length * 8 + self.bits_per_word - 1) // self.bits_per_word
