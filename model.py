"""Modelo de chismes en una arena continua: opiniones, favoritos y rumbo (Mesa 3)."""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Sequence, Tuple

import numpy as np
from mesa import Agent, DataCollector, Model
from mesa.space import ContinuousSpace

from motion import (
    ARENA_X_BOUND,
    ARENA_Y_BOUND,
    Facing,
    Vector,
    boundary_velocity,
    choose_heading,
    facing_for,
    integrate,
)
from opinions import (
    RIVAL_OPINION_SEED,
    OpinionStore,
    PersonalOpinion,
    process_heard_opinion,
)

logger = logging.getLogger(__name__)

DEFAULT_POPULATION = 80
DEFAULT_PERSONAS: Tuple[str, ...] = (
    "lady",
    "baldguy",
    "coollady",
    "princessleia",
    "blondedude",
    "hatguy",
    "redhead",
    "jacketguy",
)
GOSSIP_RADIUS = 150.0
SPAWN_EXTENT = 200.0
RIVALS_PER_PERSON = 2
# one wall overshoot per tick at most, so a small margin keeps mesa in bounds
SPACE_MARGIN = 50.0

FAST_INTERVAL = 0.01
MID_EVERY = 10  # 0.1
SLOW_EVERY = 20  # 0.2
SPEECH_ROLL_RANGE = 10000


class SpatialIndex:
    """
    Last reported position per person id, used for steering lookups.

    First write wins: once a person has been reported, later reports are
    ignored, so lookups return where that person was first seen.
    """

    def __init__(self):
        self._positions: Dict[str, Vector] = {}

    def report(self, person_id: str, position: Vector):
        if person_id not in self._positions:
            self._positions[person_id] = (float(position[0]), float(position[1]))

    def lookup(self, person_id: str) -> Vector | None:
        return self._positions.get(person_id)

    def __contains__(self, person_id: str) -> bool:
        return person_id in self._positions

    def __len__(self) -> int:
        return len(self._positions)


@dataclass
class GossipEvent:
    author: str
    origin: Vector
    radius: float
    persona: str
    statement: Tuple[str, PersonalOpinion] | None = None


@dataclass
class HeardReaction:
    listener: str
    author: str
    subject: str
    approving: bool


def wants_to_speak(chattiness: int, rng: np.random.Generator) -> bool:
    """Speech roll for one slow tick: chattiness out of 10000, inclusive."""
    return int(rng.integers(0, SPEECH_ROLL_RANGE)) <= chattiness


class Person(Agent):
    def __init__(self, model: "GossipModel", persona: str):
        super().__init__(model)
        self.person_id = str(uuid.UUID(int=self.model.random.getrandbits(128), version=4))
        self.persona = persona
        self.velocity: Vector = (0.0, 0.0)
        self.facing = Facing.RIGHT
        self.chattiness = int(self.model.rng.integers(0, 100))
        self.opinions = OpinionStore(self.person_id)

    def set_velocity(self, velocity: Vector):
        self.velocity = (float(velocity[0]), float(velocity[1]))
        self.facing = facing_for(self.velocity)
        logger.debug("vel -> dir => %s -> %s", self.velocity, self.facing.name)

    def check_boundaries(self):
        correction = boundary_velocity(self.pos)
        if correction is not None:
            self.set_velocity(correction)
            self.model.step_events["reflections"] += 1

    def advance(self):
        self.model.space.move_agent(self, integrate(self.pos, self.velocity))

    def steer(self):
        target = self.model.spatial_index.lookup(self.opinions.favorite_id())
        velocity = choose_heading(self.pos, target, self.model.rng)
        if velocity is not None:
            self.set_velocity(velocity)
            self.model.step_events["turns"] += 1

    def speak(self):
        if not wants_to_speak(self.chattiness, self.model.rng):
            return
        topic, opinion = self.opinions.pick_speakable_opinion(self.model.rng)
        event = GossipEvent(
            author=self.person_id,
            origin=(float(self.pos[0]), float(self.pos[1])),
            radius=GOSSIP_RADIUS,
            persona=self.persona,
            statement=(topic, opinion),
        )
        logger.debug("%s says %.1f about %s", self.person_id, opinion.likeability, topic)
        self.model.gossip_queue.append(event)
        self.model.step_events["statements"] += 1
        if opinion.likeability > 0.0:
            self.model.step_events["positive_statements"] += 1
        else:
            self.model.step_events["negative_statements"] += 1

    def hear(self, event: GossipEvent):
        if event.statement is None:
            return
        subject_id, transmitted = event.statement
        new_favorite = process_heard_opinion(
            self.opinions, event.author, subject_id, transmitted, self.model.rng
        )
        self.model.step_events["hearings"] += 1
        if new_favorite:
            self.model.step_events["favorite_changes"] += 1
        self.model.last_heard.append(
            HeardReaction(
                listener=self.person_id,
                author=event.author,
                subject=subject_id,
                approving=transmitted.likeability > 0.0,
            )
        )


class GossipModel(Model):
    """
    Population of people wandering an arena and gossiping about each other.

    One ``step()`` is one fast tick (0.01): walls, movement and position
    reports. Every tenth tick runs steering (0.1) and every twentieth runs
    speech and gossip propagation (0.2).
    """

    def __init__(
        self,
        population: int = DEFAULT_POPULATION,
        seed: int | None = None,
        personas: Sequence[str] = DEFAULT_PERSONAS,
    ):
        if int(population) < 1:
            raise ValueError(f"population must be positive, got {population}")
        personas = tuple(personas)
        if not personas:
            raise ValueError("at least one persona is required")
        super().__init__(seed=seed)
        self.rng = np.random.default_rng(seed)
        self.population = int(population)
        self.personas = personas
        self.space = ContinuousSpace(
            ARENA_X_BOUND + SPACE_MARGIN,
            ARENA_Y_BOUND + SPACE_MARGIN,
            torus=False,
            x_min=-(ARENA_X_BOUND + SPACE_MARGIN),
            y_min=-(ARENA_Y_BOUND + SPACE_MARGIN),
        )
        self.spatial_index = SpatialIndex()
        self.people: Dict[str, Person] = {}
        self.gossip_queue: Deque[GossipEvent] = deque()
        self.last_spoken: List[GossipEvent] = []
        self.last_heard: List[HeardReaction] = []
        self.tick_count = 0
        self.last_metrics: Dict[str, float] = {}
        self._reset_step_events()

        self._populate()
        self._make_rivals()
        self._report_positions()

        self.running = True
        self.run_metadata = {
            "seed": seed,
            "population": self.population,
            "persona_count": len(self.personas),
        }
        self.datacollector = DataCollector(
            model_reporters={
                "sim_time": lambda m: m.sim_time,
                "statements": lambda m: m.step_events["statements"],
                "positive_statements": lambda m: m.step_events["positive_statements"],
                "negative_statements": lambda m: m.step_events["negative_statements"],
                "hearings": lambda m: m.step_events["hearings"],
                "favorite_changes": lambda m: m.step_events["favorite_changes"],
                "reflections": lambda m: m.step_events["reflections"],
                "turns": lambda m: m.step_events["turns"],
                "mean_likeability": lambda m: m.last_metrics.get("mean_likeability", 0.0),
                "mean_known": lambda m: m.last_metrics.get("mean_known", 0.0),
                "self_favorite_share": lambda m: m.last_metrics.get("self_favorite_share", 0.0),
                "top_favorite_share": lambda m: m.last_metrics.get("top_favorite_share", 0.0),
            },
        )
        # per-person rows only on slow ticks, where opinions can change
        self.agent_datacollector = DataCollector(
            agent_reporters={
                "person_id": "person_id",
                "x": lambda a: a.pos[0],
                "y": lambda a: a.pos[1],
                "facing": lambda a: a.facing.name,
                "favorite": lambda a: a.opinions.favorite_id(),
                "known": lambda a: len(a.opinions),
            },
        )
        self._update_metrics()
        self.datacollector.collect(self)
        self.agent_datacollector.collect(self)

    # ------------------------------------------------------------------
    # bootstrap

    def _populate(self):
        logger.info("Populating simulation with %d people", self.population)
        for _ in range(self.population):
            persona = self.personas[int(self.rng.integers(len(self.personas)))]
            person = Person(self, persona)
            x = float(self.rng.uniform(-SPAWN_EXTENT, SPAWN_EXTENT))
            y = float(self.rng.uniform(-SPAWN_EXTENT, SPAWN_EXTENT))
            self.space.place_agent(person, (x, y))
            self.people[person.person_id] = person

    def _make_rivals(self):
        logger.info("Assigning %d rivals per person", RIVALS_PER_PERSON)
        ids = list(self.people.keys())
        for person in self.people.values():
            for _ in range(RIVALS_PER_PERSON):
                rival_id = ids[int(self.rng.integers(len(ids)))]
                # may overwrite the self-entry; the cached favorite is left as is
                person.opinions.insert(
                    rival_id, PersonalOpinion(RIVAL_OPINION_SEED, RIVAL_OPINION_SEED)
                )

    def _report_positions(self):
        for person_id, person in self.people.items():
            self.spatial_index.report(person_id, person.pos)

    # ------------------------------------------------------------------
    # passes

    def _reset_step_events(self):
        self.step_events = {
            "statements": 0,
            "positive_statements": 0,
            "negative_statements": 0,
            "hearings": 0,
            "favorite_changes": 0,
            "reflections": 0,
            "turns": 0,
        }

    def fast_pass(self):
        self.agents.do("check_boundaries")
        self.agents.do("advance")
        self._report_positions()

    def mid_pass(self):
        self.agents.do("steer")

    def slow_pass(self):
        self.agents.shuffle_do("speak")
        self.propagate_gossip()
        self._update_metrics()
        self.agent_datacollector.collect(self)

    def propagate_gossip(self):
        """Deliver every queued statement to everyone in earshot, then leave the queue empty."""
        while self.gossip_queue:
            event = self.gossip_queue.popleft()
            self.last_spoken.append(event)
            for listener in self.space.get_neighbors(event.origin, event.radius, include_center=True):
                if listener.person_id == event.author:
                    continue
                listener.hear(event)

    def step(self):
        self._reset_step_events()
        self.last_spoken = []
        self.last_heard = []
        self.tick_count += 1
        self.fast_pass()
        if self.tick_count % MID_EVERY == 0:
            self.mid_pass()
        if self.tick_count % SLOW_EVERY == 0:
            self.slow_pass()
        self.datacollector.collect(self)

    # ------------------------------------------------------------------
    # metrics and renderer boundary

    @property
    def sim_time(self) -> float:
        return self.tick_count * FAST_INTERVAL

    def _update_metrics(self):
        people = list(self.people.values())
        means = [p.opinions.mean_likeability() for p in people]
        means = [m for m in means if m is not None]
        favorites = [p.opinions.favorite_id() for p in people]
        self_favorites = sum(1 for p, fav in zip(people, favorites) if fav == p.person_id)
        top_share = 0.0
        if favorites:
            _, counts = np.unique(favorites, return_counts=True)
            top_share = float(counts.max()) / len(favorites)
        self.last_metrics = {
            "mean_likeability": float(np.mean(means)) if means else 0.0,
            "mean_known": float(np.mean([len(p.opinions) for p in people])) if people else 0.0,
            "self_favorite_share": self_favorites / len(people) if people else 0.0,
            "top_favorite_share": top_share,
        }

    def snapshot(self) -> List[Dict[str, object]]:
        """Per-person state a renderer needs for one frame."""
        return [
            {
                "id": p.person_id,
                "persona": p.persona,
                "x": float(p.pos[0]),
                "y": float(p.pos[1]),
                "facing": p.facing.name,
            }
            for p in self.people.values()
        ]

    def opinion_table(self) -> List[Dict[str, object]]:
        rows = []
        for owner_id, person in self.people.items():
            favorite_id = person.opinions.favorite_id()
            for subject_id, opinion in person.opinions.people.items():
                rows.append(
                    {
                        "owner": owner_id,
                        "subject": subject_id,
                        "trust": opinion.trust,
                        "likeability": opinion.likeability,
                        "trust_seed": opinion.trust_seed,
                        "likeability_seed": opinion.likeability_seed,
                        "is_favorite": subject_id == favorite_id,
                    }
                )
        return rows
