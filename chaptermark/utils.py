import logging
import re
import sys


def setup_logging(level=logging.INFO):
    """Configures the root logger with a standard format."""
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
        datefmt="%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def get_logger(name: str):
    return logging.getLogger(name)


def preview(text: str, limit: int = 100) -> str:
    """First `limit` characters of a subtitle cue, for human review."""
    return text[:limit]


def trim_to_word_boundary(text: str, limit: int = 120) -> str:
    """
    Cuts text to at most `limit` characters, then drops the trailing
    partial word so the snippet never ends mid-word.
    """
    if len(text) <= limit:
        return text.strip()
    cut = text[:limit]
    return re.sub(r"\s+\S*$", "", cut).strip()


def truncate(text: str, width: int) -> str:
    # Table cells in terminal output
    if len(text) <= width:
        return text
    return text[:max(width - 3, 0)] + "..."


ACRONYMS = {"bmad", "sdk", "api", "ai", "prd", "pm", "ui", "ux"}


def to_display_name(name: str) -> str:
    """
    "setup-bmad" -> "Setup BMAD", "intro" -> "Intro".
    Short all-caps tokens and known acronyms are upper-cased in full.
    """
    words = []
    for word in name.split("-"):
        if word.upper() == word and len(word) <= 5:
            words.append(word.upper())
        elif word.lower() in ACRONYMS:
            words.append(word.upper())
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)
