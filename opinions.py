"""Opiniones personales con semilla logística, almacén por agente y propagación de chismes."""

from __future__ import annotations

import copy
import math
from typing import Dict, Tuple

import numpy as np

LOGISTIC_OPINION_SCALE = -0.01
SELF_OPINION_SEED = 100.0
RIVAL_OPINION_SEED = -100.0
FIRST_IMPRESSION_RANGE = (-50.0, 50.0)


class MissingOpinionError(KeyError):
    """An opinion that must be present in a store is absent."""


def logistic_display(seed: float) -> float:
    """
    Squash a seed into the open interval (-100, 100).

    Stable near the extremes, most sensitive around zero; the steepness is
    set by LOGISTIC_OPINION_SCALE.
    """
    return (200.0 / (1.0 + math.exp(LOGISTIC_OPINION_SCALE * seed))) - 100.0


class PersonalOpinion:
    """Trust and likeability held about one person.

    The seeds are the authoritative state; ``trust`` and ``likeability`` are
    always recomputed from them. Adjustments are tethered to the seeds captured
    at construction, so a second adjustment replaces the first.
    """

    def __init__(self, trust_seed: float, likeability_seed: float):
        self._origin_trust_seed = float(trust_seed)
        self._origin_likeability_seed = float(likeability_seed)
        self.trust_seed = float(trust_seed)
        self.likeability_seed = float(likeability_seed)
        self.trust = 0.0
        self.likeability = 0.0
        self._propagate_display_values()

    def adjust_trust(self, modifier: float):
        # trust is computed but nothing consumes it yet
        self.trust_seed = self._origin_trust_seed + modifier
        self.likeability_seed = self._origin_likeability_seed + 0.5 * modifier
        self._propagate_display_values()

    def adjust_likeability(self, modifier: float):
        self.trust_seed = self._origin_trust_seed + 0.5 * modifier
        self.likeability_seed = self._origin_likeability_seed + modifier
        self._propagate_display_values()

    def _propagate_display_values(self):
        self.trust = logistic_display(self.trust_seed)
        self.likeability = logistic_display(self.likeability_seed)

    def snapshot(self) -> "PersonalOpinion":
        return copy.copy(self)

    def __repr__(self) -> str:
        return (
            f"PersonalOpinion(trust={self.trust:.2f}, likeability={self.likeability:.2f}, "
            f"trust_seed={self.trust_seed:.2f}, likeability_seed={self.likeability_seed:.2f})"
        )


def initial_impression(rng: np.random.Generator) -> PersonalOpinion:
    """First impression of someone never heard of before: one draw for both seeds."""
    lo, hi = FIRST_IMPRESSION_RANGE
    value = float(rng.uniform(lo, hi))
    return PersonalOpinion(value, value)


class OpinionStore:
    """
    Everything one agent thinks about the people it knows.

    The favorite is cached as ``(person_id, likeability)`` where the
    likeability is the value at the moment of election. It is not refreshed
    when that person's opinion later changes; only a different candidate that
    beats the cached value can take its place.
    """

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        opinion_of_self = PersonalOpinion(SELF_OPINION_SEED, SELF_OPINION_SEED)
        self.people: Dict[str, PersonalOpinion] = {owner_id: opinion_of_self}
        self.favorite_person: Tuple[str, float] = (owner_id, opinion_of_self.likeability)

    def __contains__(self, person_id: str) -> bool:
        return person_id in self.people

    def __len__(self) -> int:
        return len(self.people)

    def get(self, person_id: str) -> PersonalOpinion | None:
        return self.people.get(person_id)

    def opinion_of(self, person_id: str) -> PersonalOpinion:
        try:
            return self.people[person_id]
        except KeyError:
            raise MissingOpinionError(
                f"{self.owner_id} holds no opinion of {person_id}"
            ) from None

    def insert(self, person_id: str, opinion: PersonalOpinion):
        self.people[person_id] = opinion

    def check_if_new_favorite(self, candidate_opinion: PersonalOpinion, candidate_id: str) -> bool:
        """Elect the candidate if it beats the cached likeability. Returns True on change."""
        if candidate_opinion.likeability > self.favorite_person[1]:
            self.favorite_person = (candidate_id, candidate_opinion.likeability)
            return True
        return False

    def favorite_id(self) -> str:
        return self.favorite_person[0]

    def pick_speakable_opinion(self, rng: np.random.Generator) -> Tuple[str, PersonalOpinion]:
        """
        Pick something to say: a uniformly random known person and a copy of
        the opinion held about them.

        The topic is not weighted by relevance; favorite and rivals are as
        likely as anyone else, and the owner can end up talking about itself.
        """
        known = list(self.people.keys())
        topic = known[int(rng.integers(len(known)))] if known else self.owner_id
        return topic, self.opinion_of(topic).snapshot()

    def mean_likeability(self, include_self: bool = False) -> float | None:
        values = [
            op.likeability
            for pid, op in self.people.items()
            if include_self or pid != self.owner_id
        ]
        if not values:
            return None
        return float(np.mean(values))


def credibility_weight(held_likeability_of_speaker: float) -> float:
    """
    How much a listener's view of the speaker scales what it hears.

    Liked speakers give a positive weight that shrinks as they become more
    liked; neutral or disliked speakers give a negative weight, inverting the
    sentiment of the statement.
    """
    if held_likeability_of_speaker > 0.0:
        return 100.0 - held_likeability_of_speaker
    return -100.0 - held_likeability_of_speaker


def process_heard_opinion(
    listener: OpinionStore,
    speaker_id: str,
    subject_id: str,
    transmitted_opinion: PersonalOpinion,
    rng: np.random.Generator,
) -> bool:
    """
    Fold one overheard statement into the listener's opinions.

    The listener's likeability of the speaker is read before any first
    impressions are inserted, so a speaker heard for the first time weighs in
    at 0 (weight -100) rather than at its fresh impression. Returns True when
    the subject became the listener's new favorite.
    """
    held_speaker = listener.get(speaker_id)
    held_likeability_of_speaker = held_speaker.likeability if held_speaker is not None else 0.0

    for person_id in (speaker_id, subject_id):
        if person_id not in listener:
            listener.insert(person_id, initial_impression(rng))

    weight = credibility_weight(held_likeability_of_speaker)
    subject_opinion = listener.opinion_of(subject_id)
    subject_opinion.adjust_likeability(weight * transmitted_opinion.likeability)

    return listener.check_if_new_favorite(subject_opinion, subject_id)
