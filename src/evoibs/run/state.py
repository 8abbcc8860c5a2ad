"""
State Module

This module encodes the state of a population as a plain dictionary
(suitable for JSON) and restores it. Restoring validates everything up
front: mismatched state is rejected as a whole and the population is
left untouched.

Functions:
    encode_state:  Population state as a dictionary
    restore_state: Restore a population from a dictionary
    save_state:    Write the state of a population to a JSON file
    load_state:    Restore a population from a JSON file
"""

import json
import logging
import numpy as np

from evoibs.pool.population import Population
from evoibs.topology        import Geometry

logger = logging.getLogger(__name__)

def encode_state(population: Population) -> dict:
    """
    Parameters:
        population: an initialized population

    Returns:
        Dictionary with the adjacency of unique geometries (None otherwise),
        the normalised strategies, scores, interaction counts, lineage tags
        and the generation and real time counters
    """
    reproduction = population.reproduction
    return {
        "size"        : population.size,
        "interaction" : population.interaction.encode(),
        "reproduction": None if reproduction is population.interaction else reproduction.encode(),
        "strategies"  : population.strategies.encode(),
        "scores"      : population.scores.tolist(),
        "interactions": population.interactions.tolist(),
        "tags"        : population.tags.tolist(),
        "generation"  : population.generation,
        "realtime"    : population.realtime,
    }

def _valid_adjacency(geometry: Geometry, adjacency) -> bool:
    if adjacency is None:
        # geometries determined by their parameters are rebuilt, not restored
        return not geometry.is_unique
    if len(adjacency) != geometry.size:
        return False
    return all(0 <= j < geometry.size for links in adjacency for j in links)

def _reject(reason: str) -> bool:
    logger.warning(f"state rejected: {reason}")
    return False

def restore_state(population: Population, state: dict) -> bool:
    """
    Restore the state of 'population'. The population must have been
    checked and reset with the same parameters as the encoded population.

    Parameters:
        population: the population to restore
        state:      dictionary as produced by 'encode_state()'

    Returns:
        True on success, False if the state does not match the population
    """
    size = population.size
    if state.get("size") != size:
        return _reject(f"population size {state.get('size')} (expected {size})")

    arrays = {}
    for key in ("scores", "interactions", "tags"):
        values = np.asarray(state.get(key, []), dtype=float)
        if values.shape != (size,):
            return _reject(f"'{key}' has shape {values.shape} (expected ({size},))")
        arrays[key] = values
    if np.any(arrays["interactions"] < 0):
        return _reject("negative interaction counts")

    if not _valid_adjacency(population.interaction, state.get("interaction")):
        return _reject("adjacency of interaction geometry")
    shared = population.reproduction is population.interaction
    if not shared and not _valid_adjacency(population.reproduction, state.get("reproduction")):
        return _reject("adjacency of reproduction geometry")

    # strategies validate themselves and remain unchanged on failure
    if not population.strategies.decode(state.get("strategies", [])):
        return _reject("strategies do not match the strategy representation")

    if state.get("interaction") is not None:
        population.interaction.decode(state["interaction"])
    if not shared and state.get("reproduction") is not None:
        population.reproduction.decode(state["reproduction"])
    # accumulated score ranges depend on the degrees of the restored links
    population._check_adjust_scores()
    population._update_min_max_scores()
    if population.is_moran:
        population._check_moran()
    population.alloc()

    population.tags[:]       = arrays["tags"].astype(int)
    population._next_tags[:] = population.tags
    population.set_scores(arrays["scores"], arrays["interactions"].astype(int))
    population.generation = float(state.get("generation", 0.0))
    population.realtime   = float(state.get("realtime", 0.0))

    # new lineages must not collide with restored ones
    next_tag = int(population.tags.max()) + 1 if size > 0 else 0
    if population._ids.issued < next_tag:
        population._ids.reset(next_tag)
    return True

def save_state(population: Population, filename: str):
    with open(filename, "w") as f:
        json.dump(encode_state(population), f)

def load_state(population: Population, filename: str) -> bool:
    """
    Restore 'population' from a JSON file written by 'save_state()'.
    Missing files raise FileNotFoundError.
    """
    with open(filename) as f:
        state = json.load(f)
    return restore_state(population, state)
