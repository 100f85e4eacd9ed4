"""Georgian to Latin transliteration used for store partition keys."""

# National system, with ejectives marked by an apostrophe.
GEORGIAN_TO_LATIN = {
    "ა": "a", "ბ": "b", "გ": "g",
    "დ": "d", "ე": "e", "ვ": "v",
    "ზ": "z", "თ": "t", "ი": "i",
    "კ": "k'", "ლ": "l", "მ": "m",
    "ნ": "n", "ო": "o", "პ": "p'",
    "ჟ": "zh", "რ": "r", "ს": "s",
    "ტ": "t'", "უ": "u", "ფ": "p",
    "ქ": "k", "ღ": "gh", "ყ": "q",
    "შ": "sh", "ჩ": "ch", "ც": "ts",
    "ძ": "dz", "წ": "ts'", "ჭ": "ch'",
    "ხ": "kh", "ჯ": "j", "ჰ": "h",
}


def normalize(text: str) -> str:
    """Return the latin form of a Georgian string.

    Every character missing from the table, including ASCII letters, digits
    and whitespace, becomes a single space.
    """
    return "".join(GEORGIAN_TO_LATIN.get(ch, " ") for ch in text)
