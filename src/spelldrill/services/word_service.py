"""Service providing the drill word list."""
import logging
from pathlib import Path
from typing import List, Optional, Union

from spelldrill.config import settings

logger = logging.getLogger(__name__)

DEFAULT_WORDS_FILE = "words.txt"

DEFAULT_WORDS = [
    "about", "above", "after", "again", "almost", "another", "answer", "are",
    "area", "around", "beautiful", "because", "before", "being", "best", "black",
    "body", "boy", "brothers", "bug", "can't", "car", "caught", "children",
    "city", "clock", "could", "crash", "crashed", "didn't", "don't", "door",
    "drink", "easy", "eating", "enough", "every", "favorite", "first", "float",
    "found", "friends", "girl", "have", "hear", "heard", "here", "horse",
    "house", "how", "however", "hurt", "idea", "it's", "joke", "jump",
    "junk", "kicked", "knew", "line", "listen", "little", "low", "made",
    "mail", "make", "many", "measure", "more", "name", "new", "nice",
    "off", "often", "once", "one", "order", "other", "our", "outside",
    "people", "phone", "piece", "played", "pretty", "questions", "rain", "really",
    "ride", "right", "said", "sale", "saw", "school", "second", "shook",
    "since", "sister", "skate", "slow", "small", "snap", "sometimes", "song",
    "soon", "sports", "stop", "sure", "talk", "tell", "than", "thank",
    "that's", "their", "them", "then", "there", "they", "they're", "thing",
    "those", "thought", "through", "to", "too", "trip", "truck", "two",
    "use", "usually", "very", "wanted", "was", "watch", "went", "were",
    "what", "when", "where", "who", "whole", "why", "will", "wind",
    "with", "won", "won't", "write", "writing", "young",
]


def read_words_file(path: Union[str, Path]) -> List[str]:
    """Read one word per line, skipping blank lines, comments and duplicates."""
    words = []
    seen = set()
    with open(path, encoding="utf-8") as f:
        for line in f:
            word = line.strip()
            if not word or word.startswith("#") or word.lower() in seen:
                continue
            seen.add(word.lower())
            words.append(word)
    return words


def load_words(words_file: Optional[str] = None) -> List[str]:
    """Get the word list for the drill.

    The configured words file (or 'words.txt' in the dictionaries directory) is
    read once at startup; without one, or when the file is unreadable or empty,
    the built-in list is used.
    """
    words_file = words_file or settings.session.words_file
    if not words_file:
        default_file = settings.paths.dictionaries_dir / DEFAULT_WORDS_FILE
        if not default_file.exists():
            return list(DEFAULT_WORDS)
        words_file = str(default_file)

    try:
        words = read_words_file(words_file)
    except OSError as e:
        logger.error(f"Could not read words file {words_file}: {e}")
        return list(DEFAULT_WORDS)

    if not words:
        logger.warning(f"Words file {words_file} is empty, using the built-in list")
        return list(DEFAULT_WORDS)

    logger.info(f"Loaded {len(words)} words from {words_file}")
    return words
