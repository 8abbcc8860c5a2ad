"""
Update Rules Module

This module implements the player update rules: how a focal individual
compares its fitness with the fitness of the members of its reference
group and picks a model to imitate.

Every rule has the signature 'rule(population, me, group) -> bool'. A rule
proposes the new strategy of 'me' in the scratch buffer of the strategy
representation (through 'population.update_from_model_at()') and returns
True if a model was adopted. Nothing is committed here.

Functions:
    update_best:           Adopt the fittest strategy (deterministic tie-break)
    update_best_random:    Adopt the fittest strategy (random tie-break)
    update_best_reply:     Adopt the best reply to the reference group
    update_proportional:   Adopt strategies proportional to fitness
    update_imitate:        Imitate with probabilities linear in fitness differences
    update_imitate_better: Imitate better models only
    update_thermal:        Imitate according to the Fermi function
"""

import numpy as np
from typing import TYPE_CHECKING

from evoibs.pool.update_types import PlayerUpdateType
if TYPE_CHECKING:
    from evoibs.pool.population import Population

def _is_neutral(population: 'Population') -> bool:
    return abs(population.max_score - population.min_score) < 1e-8

def _adopt_random(population: 'Population', me: int, group: np.ndarray) -> bool:
    """
    Pick a random member of the group or the focal individual itself.
    """
    hit = int(population.rng.integers(len(group) + 1))
    if hit == len(group):
        return False
    population.update_from_model_at(me, int(group[hit]))
    return True

def _compete(population: 'Population', me: int, group: np.ndarray, probs: np.ndarray, rule: str) -> bool:
    """
    Resolve the competition among several models. Each model 'i' is adopted
    with probability 'probs[i]' independently of all others; if several models
    qualify, one of them is chosen proportional to 'probs'.
    """
    norm = float(probs.sum())
    if norm <= 0.0:
        return False
    no_change = float(np.prod(1.0 - probs))
    choice    = population.rng.random()
    if choice >= 1.0 - no_change:
        return False
    if len(group) == 1:
        population.update_from_model_at(me, int(group[0]))
        return True

    cumulative = np.cumsum(probs) * ((1.0 - no_change) / norm)
    hit = int(np.searchsorted(cumulative, choice, side='right'))
    if hit >= len(group):
        population.fail(f"{rule} update failed: choice={choice}, cumulative probabilities={cumulative.tolist()}")
    population.update_from_model_at(me, int(group[hit]))
    return True

def _deterministic_probs(diffs: np.ndarray, error: float, equal: float) -> np.ndarray:
    # zero noise: always adopt better models (barring errors)
    return np.where(diffs > 0.0, 1.0 - error, np.where(diffs < 0.0, error, equal))

def _clamp(values: np.ndarray, error: float) -> np.ndarray:
    return np.minimum(1.0 - error, np.maximum(error, values))

def update_best(population: 'Population', me: int, group: np.ndarray) -> bool:
    if _is_neutral(population):
        return False

    fitness      = population.fitness
    best_player  = me
    best_fitness = fitness[me]
    switched     = False
    for you in group:
        you         = int(you)
        candidate   = fitness[you]
        compare     = candidate
        if abs(best_fitness - compare) < 1e-8:
            # tie: let the strategy representation decide
            if population.strategies.preferred_best(me, best_player, you):
                compare += 1e-8
            else:
                compare -= 1e-8
        if best_fitness > compare:
            continue
        best_fitness = candidate
        best_player  = you
        switched     = True

    if not switched:
        return False
    population.update_from_model_at(me, best_player)
    return True

def update_best_random(population: 'Population', me: int, group: np.ndarray) -> bool:
    fitness      = population.fitness
    best_player  = me
    best_fitness = fitness[me]
    switched     = False
    for you in group:
        you       = int(you)
        candidate = fitness[you]
        if candidate > best_fitness:
            best_fitness = candidate
            best_player  = you
            switched     = True
            continue
        if abs(candidate - best_fitness) < 1e-8 and population.rng.random() < 0.5:
            best_player = you
            switched    = True

    if not switched:
        return False
    population.update_from_model_at(me, best_player)
    return True

def update_best_reply(population: 'Population', me: int, group: np.ndarray) -> bool:
    return population.strategies.best_reply_at(me, group, population.game)

def update_proportional(population: 'Population', me: int, group: np.ndarray) -> bool:
    if _is_neutral(population):
        return _adopt_random(population, me, group)

    min_fitness = population.fitness_map(population.min_score)
    mine        = population.fitness[me] - min_fitness
    theirs      = population.fitness[group] - min_fitness
    total       = mine + float(theirs.sum())
    if total <= 0.0:
        # everybody has the minimal fitness
        return _adopt_random(population, me, group)

    choice = population.rng.random() * total
    if choice <= mine:
        return False
    choice -= mine
    for you, weight in zip(group, theirs):
        if choice <= weight:
            population.update_from_model_at(me, int(you))
            return True
        choice -= weight
    population.fail(f"proportional update failed: choice={choice}, total={total}")

def _update_replicator(population: 'Population', me: int, group: np.ndarray, better_only: bool) -> bool:
    if _is_neutral(population):
        if better_only:
            return False
        return _adopt_random(population, me, group)

    error     = population.player_error
    inv_noise = population.inv_noise
    diffs     = population.fitness[group] - population.fitness[me]

    if inv_noise <= 0.0:
        probs = _deterministic_probs(diffs, error, error if better_only else 0.5)
    else:
        scale, shift = (inv_noise, 0.0) if better_only else (0.5 * inv_noise, 0.5)
        fmap = population.fitness_map
        if population.score_averaged:
            probs = _clamp(diffs * scale / (fmap(population.max_score) - fmap(population.min_score)) + shift, error)
        else:
            # accumulated scores: the range depends on the number of interactions
            my_min = fmap(population.min_score * population.interactions[me])
            ranges = fmap(population.max_score * population.interactions[group]) - my_min
            probs  = _clamp(diffs / ranges * scale + shift, error)

    return _compete(population, me, group, probs, "imitate-better" if better_only else "imitate")

def update_imitate(population: 'Population', me: int, group: np.ndarray) -> bool:
    return _update_replicator(population, me, group, better_only=False)

def update_imitate_better(population: 'Population', me: int, group: np.ndarray) -> bool:
    return _update_replicator(population, me, group, better_only=True)

def update_thermal(population: 'Population', me: int, group: np.ndarray) -> bool:
    if _is_neutral(population):
        return _adopt_random(population, me, group)

    error     = population.player_error
    inv_noise = population.inv_noise
    diffs     = population.fitness[group] - population.fitness[me]
    if inv_noise <= 0.0:
        probs = _deterministic_probs(diffs, error, 0.5)
    else:
        with np.errstate(over='ignore'):
            probs = _clamp(1.0 / (2.0 + np.expm1(-diffs * inv_noise)), error)
    return _compete(population, me, group, probs, "thermal")

RULES = {
    PlayerUpdateType.BEST          : update_best,
    PlayerUpdateType.BEST_RANDOM   : update_best_random,
    PlayerUpdateType.BEST_REPLY    : update_best_reply,
    PlayerUpdateType.PROPORTIONAL  : update_proportional,
    PlayerUpdateType.IMITATE       : update_imitate,
    PlayerUpdateType.IMITATE_BETTER: update_imitate_better,
    PlayerUpdateType.THERMAL       : update_thermal,
}
