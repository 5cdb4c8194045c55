"""Question generation.

Each question shows one Pokemon's artwork with four names to choose from. Wrong
options prefer Pokemon that share a type with the right answer so that the
choice is not trivially obvious.
"""

from collections import defaultdict
import logging
import random
from typing import Dict, List, Optional, Sequence, Set
from uuid import uuid4

from pokequiz.errors import InsufficientPokemonError
from pokequiz.models import GameSettings, Question
from .pokeapi import PokemonRecord

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4
DISTRACTORS_PER_QUESTION = OPTIONS_PER_QUESTION - 1
TYPE_MATCHED_DISTRACTORS = 2
POOL_MULTIPLIER = 8
MIN_POOL_SIZE = 80
MAX_FETCH_ROUNDS = 5


def random_unique_ids(count: int, upper: int, exclude: Set[int], rng: random.Random) -> List[int]:
    """Up to ``count`` distinct ids in ``[1, upper]`` not in ``exclude``."""
    available = upper - len({i for i in exclude if 1 <= i <= upper})
    count = max(0, min(count, available))
    picked: List[int] = []
    seen = set(exclude)
    while len(picked) < count:
        candidate = rng.randint(1, upper)
        if candidate not in seen:
            seen.add(candidate)
            picked.append(candidate)
    return picked


def dedupe_by_name(records: Sequence[PokemonRecord]) -> List[PokemonRecord]:
    """Drop records without artwork and later records sharing a display name."""
    seen = set()
    unique = []
    for record in records:
        if record.image_url and record.name not in seen:
            seen.add(record.name)
            unique.append(record)
    return unique


def build_pool(provider, question_count: int, rng: random.Random) -> List[PokemonRecord]:
    needed = question_count * OPTIONS_PER_QUESTION
    target = max(question_count * POOL_MULTIPLIER, MIN_POOL_SIZE)
    total = provider.total_count()

    tried: Set[int] = set()
    ids = random_unique_ids(target, total, tried, rng)
    tried.update(ids)
    pool = dedupe_by_name(provider.fetch_many(ids))

    rounds = 0
    while len(pool) < needed and rounds < MAX_FETCH_ROUNDS:
        rounds += 1
        ids = random_unique_ids(needed - len(pool) + 10, total, tried, rng)
        if not ids:
            break
        tried.update(ids)
        pool = dedupe_by_name(pool + provider.fetch_many(ids))
        logger.info(f"[pokeapi-round] round={rounds} pool={len(pool)} needed={needed}")

    if len(pool) < needed:
        raise InsufficientPokemonError(
            f'Could not fetch enough Pokemon with artwork. Needed {needed}, got {len(pool)}.'
        )
    return pool


def _pick(candidates: List[PokemonRecord], count: int, blocked: Set[str], rng: random.Random) -> List[PokemonRecord]:
    candidates = list(candidates)
    rng.shuffle(candidates)
    picked = []
    for record in candidates:
        if len(picked) >= count:
            break
        if record.name in blocked:
            continue
        picked.append(record)
        blocked.add(record.name)
    return picked


def pick_distractors(
    correct: PokemonRecord,
    pool: List[PokemonRecord],
    by_type: Dict[str, List[PokemonRecord]],
    used: Set[str],
    rng: random.Random,
) -> List[PokemonRecord]:
    """Three wrong options for ``correct``; names are added to ``used``."""
    blocked = set(used)
    blocked.add(correct.name)

    type_matches = []
    seen = set()
    for type_name in correct.types:
        for record in by_type.get(type_name, []):
            if record.name not in seen:
                seen.add(record.name)
                type_matches.append(record)

    chosen = _pick(type_matches, TYPE_MATCHED_DISTRACTORS, blocked, rng)
    chosen += _pick(pool, DISTRACTORS_PER_QUESTION - len(chosen), blocked, rng)

    if len(chosen) < DISTRACTORS_PER_QUESTION:
        # Last resort: allow names already used by another question
        in_question = {correct.name} | {r.name for r in chosen}
        chosen += _pick(pool, DISTRACTORS_PER_QUESTION - len(chosen), in_question, rng)

    used.update(r.name for r in chosen)
    return chosen


def generate_questions(settings: GameSettings, provider, rng: Optional[random.Random] = None) -> List[Question]:
    rng = rng or random.Random()
    count = settings.question_count
    pool = build_pool(provider, count, rng)

    shuffled = list(pool)
    rng.shuffle(shuffled)
    answers = shuffled[:count]
    distractor_pool = shuffled[count:]

    by_type: Dict[str, List[PokemonRecord]] = defaultdict(list)
    for record in distractor_pool:
        for type_name in record.types:
            by_type[type_name].append(record)

    used = {record.name for record in answers}
    questions = []
    for correct in answers:
        distractors = pick_distractors(correct, distractor_pool, by_type, used, rng)
        options = [correct.name] + [d.name for d in distractors]
        rng.shuffle(options)
        questions.append(Question(
            question_id=uuid4().hex,
            image_url=correct.image_url,
            options=options,
            correct_index=options.index(correct.name),
            correct_name=correct.name,
            pokemon_id=correct.id,
        ))

    logger.info(f"[questions] generated={len(questions)} pool={len(pool)}")
    return questions


class QuestionGenerator:
    """Binds a data provider so the session service can call ``generator(settings)``."""

    def __init__(self, provider, rng: Optional[random.Random] = None):
        self.provider = provider
        self.rng = rng

    def __call__(self, settings: GameSettings) -> List[Question]:
        return generate_questions(settings, self.provider, self.rng)
