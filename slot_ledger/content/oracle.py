from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List

from slot_ledger.content.library import TEMPLATE_LIBRARY, StoryTemplate
from slot_ledger.content.prng import Mulberry32, slot_seed
from slot_ledger.domain.models import TIERS, GeneratedContent, Tier
from slot_ledger.utils.time import parse_slot_date, parse_slot_hour

logger = logging.getLogger(__name__)

LABEL_COUNT = 10
MAX_LABEL_LENGTH = 60
MAX_LABEL_ATTEMPTS = 200
MAX_PARAGRAPHS = 6
MIN_NARRATIVE_CHARS = 280
EXTRA_CONCEPT_CHANCE = 0.25

VIRTUES = ["humility", "discipline", "patience", "kindness", "courage", "honor", "truth"]
VICES = ["ego", "greed", "fear", "arrogance", "envy", "deceit"]
LOCATIONS = [
    "a crowded city lane",
    "a windy shoreline",
    "a quiet forest path",
    "a stormy sea",
    "a dusty trade route",
    "a mountain ridge",
    "a small workshop",
    "a cold camp under open sky",
    "a noisy stadium tunnel",
    "a late-night lab room",
]
PROTAGONISTS = [
    "a young apprentice",
    "a stubborn tinkerer",
    "a steady crew chief",
    "a careful courier",
    "a quick-witted stall keeper",
    "a night-shift operator",
    "a rescue coordinator",
    "a seasoned captain",
    "a patient challenger",
    "a quiet watcher",
]
OBSTACLES = [
    "a closing deadline",
    "bad weather",
    "a tempting shortcut",
    "a broken tool",
    "a false rumor",
    "an unfair head start",
    "a sudden error",
    "thin supplies",
    "crowd noise",
    "doubt from others",
]
TURNS = [
    "a tiny detail",
    "a last-minute call",
    "an old habit",
    "a simple signal",
    "an honest apology",
    "a quiet warning",
    "a clean restart",
    "a brave pause",
]
NAMES = [
    "Aarav",
    "Meera",
    "Kabir",
    "Nisha",
    "Riya",
    "Ishaan",
    "Zoya",
    "Arjun",
    "Amina",
    "Sofia",
    "Mateo",
    "Noah",
    "Lina",
    "Kenji",
]
FALLBACK_CONCEPTS = ["choice", "lesson", "promise", "trial", "truth"]

# (location, words in tags, words in keywords); checked in this order.
_LOCATION_HINTS = [
    ("a late-night lab room", ("science",), ()),
    ("a stormy sea", ("sea",), ()),
    ("a mountain ridge", ("mountain",), ()),
    ("a noisy stadium tunnel", ("sport",), ()),
    ("a dusty trade route", ("trade",), ()),
    ("a windy shoreline", ("wind",), ()),
    ("a cold camp under open sky", ("antarctica", "exploration"), ()),
    ("a crowded city lane", ("city",), ()),
    ("a riverbank at dusk", ("river",), ("river",)),
    ("a quiet forest path", ("forest",), ("forest",)),
    ("a dusty trade route", ("desert",), ("desert",)),
]


@dataclass
class _Vocabulary:
    concepts: List[str]
    locations: List[str]


def generate_content_for_slot(slot_date: str | date, slot_hour: int) -> Dict[Tier, GeneratedContent]:
    """Deterministic labels, narrative and suggested digit for every tier of a slot.

    The output depends only on ``(slot_date, slot_hour)``: every call with the
    same key returns identical content, so concurrent backfills agree.
    """
    slot_date = parse_slot_date(slot_date)
    slot_hour = parse_slot_hour(slot_hour)
    rng = Mulberry32(slot_seed(slot_date, slot_hour))
    picked = rng.sample(TEMPLATE_LIBRARY, len(TIERS))

    out: Dict[Tier, GeneratedContent] = {}
    for index, tier in enumerate(TIERS):
        template = picked[index] if index < len(picked) else TEMPLATE_LIBRARY[0]
        narrative = _narrative(template, rng)
        labels = _labels(template, rng)
        out[tier] = GeneratedContent(
            template_id=template.id,
            template_name=template.name,
            narrative=narrative,
            labels=labels,
            suggested_digit=rng.below(10),
        )
    logger.debug(
        "Generated content for %s:%s templates=%s",
        slot_date,
        slot_hour,
        [item.template_id for item in out.values()],
    )
    return out


def _vocabulary(template: StoryTemplate) -> _Vocabulary:
    concepts: list[str] = []
    seen: set[str] = set()
    for raw in [*template.keywords, *template.tags]:
        word = _clean(raw)
        if not word or word.lower() in seen:
            continue
        seen.add(word.lower())
        concepts.append(word)
        if len(concepts) >= LABEL_COUNT:
            break

    tag_text = " ".join(template.tags).lower()
    keyword_text = " ".join(template.keywords).lower()
    biased = [
        location
        for location, tag_words, keyword_words in _LOCATION_HINTS
        if any(word in tag_text for word in tag_words) or any(word in keyword_text for word in keyword_words)
    ]
    return _Vocabulary(concepts=concepts or list(FALLBACK_CONCEPTS), locations=biased or list(LOCATIONS))


def _narrative(template: StoryTemplate, rng: Mulberry32) -> str:
    vocab = _vocabulary(template)
    concepts = rng.sample(vocab.concepts, 3)
    first = concepts[0] if len(concepts) > 0 else "lesson"
    second = concepts[1] if len(concepts) > 1 else "choice"
    third = concepts[2] if len(concepts) > 2 else "focus"

    virtue = rng.choice(VIRTUES, "discipline")
    vice = rng.choice(VICES, "ego")
    place = _definite(rng.choice(vocab.locations, LOCATIONS[0]))
    hero = rng.choice(PROTAGONISTS, PROTAGONISTS[2])
    obstacle = rng.choice(OBSTACLES, OBSTACLES[0])
    turn = rng.choice(TURNS, TURNS[0])
    name = rng.choice(NAMES, NAMES[0])
    ally = rng.choice([other for other in NAMES if other != name], NAMES[1])

    openers = [
        f"Nothing about {place} felt settled that day.",
        f"At {place}, the hours seemed to run faster than usual.",
        f"The light was fading at {place}, and the stakes were climbing.",
        f"Early that morning at {place}, one careless move could snowball.",
        f"Amid the shifting noise of {place}, one question still had no answer.",
        f"Late in the afternoon at {place}, everyone watched the same job.",
    ]
    stakes = [
        f"The task looked plain enough: keep {first} safe and commit to {second} at just the right moment.",
        f"{first.capitalize()} and {second} had to move together; a single slip would undo the round.",
        f"Everyone knew the plan, and {obstacle} was ready to put it to the test.",
    ]
    conflicts = [
        f"As time wore on, {vice} kept suggesting an easier way out.",
        f"The strain grew, and {vice} argued for a hurried answer.",
        f"It all seemed under control until {obstacle} knocked the rhythm loose.",
    ]
    twists = [
        f"Then came {turn}, the sort of thing nobody notices at first glance.",
        f"All at once, {turn} brought the whole scene into focus.",
        f"Right then, {turn} shut the wrong door for good.",
    ]
    resolutions = [
        f"{name} took one slow breath and moved with {virtue}.",
        f"{ally} said only \"again.\" {name} leaned on {virtue} and set the pace.",
        f"{name} let {virtue} lead, one step after another, without fuss.",
    ]
    endings = [
        f"In the end {third} held firm, and the call on {second} proved right.",
        f"Strength did not decide it; {third} did.",
        f"Everyone saw it then: {first} counts only when {virtue} stands next to it.",
    ]
    closers = [
        f"Somewhere quiet at {place}, a small choice turned the whole day.",
        "No one applauded, but the work was finished and finished well.",
        "The story stops here, though the moment lingers.",
    ]

    paragraphs = [
        rng.choice(openers, openers[0]),
        f"{name} was {hero}.",
        rng.choice(stakes, stakes[0]),
        rng.choice(conflicts, conflicts[0]),
        rng.choice(twists, twists[0]),
        rng.choice(resolutions, resolutions[0]),
        rng.choice(endings, endings[0]),
        rng.choice(closers, closers[0]),
    ]
    text = "\n\n".join(paragraphs[:MAX_PARAGRAPHS])
    if len(text) >= MIN_NARRATIVE_CHARS:
        return text
    closing = _sentence(
        f"From then on {name} remembered: when {vice} leads, mistakes pile up; when {virtue} leads, the way opens"
    )
    return f"{text}\n\n{closing}"


def _labels(template: StoryTemplate, rng: Mulberry32) -> list[str]:
    vocab = _vocabulary(template)
    concepts = vocab.concepts
    lead = _title(rng.choice(concepts, "The Lesson"))
    second = _title(rng.choice(concepts[1:], "The Choice"))
    third = _title(rng.choice(concepts[2:], "Focus"))
    virtue = _title(rng.choice(VIRTUES, "Discipline"))
    vice = _title(rng.choice(VICES, "Ego"))
    place = _title(" ".join(_indefinite_stripped(rng.choice(vocab.locations, LOCATIONS[0])).split(" ")[:3]))

    patterns: list[Callable[[], str]] = [
        lambda: f"{virtue} Against {vice}",
        lambda: "Last Minute, Level Head",
        lambda: "Signal Through The Noise",
        lambda: f"The {second} That Held",
        lambda: f"Under Pressure ({third})",
        lambda: "No Shortcuts Today",
        lambda: f"When {virtue} Took Over",
        lambda: "Small Detail, Big Turn",
        lambda: f"What {vice} Costs",
        lambda: f"{place}: The Turning Point",
        lambda: f"{lead} Under Fire",
        lambda: "Reset, Focus, Finish",
    ]

    labels: list[str] = []
    seen: set[str] = set()
    attempts = 0
    while len(labels) < LABEL_COUNT and attempts < MAX_LABEL_ATTEMPTS:
        attempts += 1
        label = _title(patterns[rng.below(len(patterns))]())
        if rng.random() < EXTRA_CONCEPT_CHANCE:
            extra = _title(rng.choice(concepts, "Lesson"))
            if extra.lower() not in label.lower():
                label = f"{label} ({extra})"
        label = label[:MAX_LABEL_LENGTH].strip()
        if label in seen:
            continue
        seen.add(label)
        labels.append(label)

    counter = len(labels)
    while len(labels) < LABEL_COUNT:
        label = f"{lead} {counter}"
        counter += 1
        if label not in seen:
            seen.add(label)
            labels.append(label)
    return labels


def _clean(value: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[_-]+", " ", str(value or ""))).strip()


def _title(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in str(value or "").split())


def _sentence(value: str) -> str:
    text = str(value or "").strip()
    if not text or text[-1] in ".!?":
        return text
    return f"{text}."


def _indefinite_stripped(location: str) -> str:
    return re.sub(r"^an?\s+", "", location, flags=re.IGNORECASE)


def _definite(location: str) -> str:
    text = _clean(location)
    if not text:
        return "the city"
    if re.match(r"^an?\s+", text, flags=re.IGNORECASE):
        return f"the {_indefinite_stripped(text)}"
    return text
