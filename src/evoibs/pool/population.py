"""
Population Module

This module implements the Population class, the engine of the individual
based simulations. The population manages the strategies, scores and fitness
of all individuals, samples interaction and reference groups from the
interaction and reproduction geometries, and advances the evolutionary
process one update (or one synchronous sweep) at a time.

Bookkeeping: whenever the score of an individual changes, its fitness and the
total fitness of the population change in the same step. The total fitness is
maintained incrementally and only re-summed when rounding errors threaten.
The index of the individual with the highest score is maintained as a
watermark for rejection sampling.

Classes:
    Population: Evolving population of individuals on a geometry
"""

import logging
import numpy as np

from evoibs.games             import ContinuousSnowdrift, MatrixGame
from evoibs.pool              import update_rules
from evoibs.pool.fitness      import FitnessMap, FitnessMapType
from evoibs.pool.update_types import MigrationType, PlayerUpdateType, PopulationUpdateType
from evoibs.run.config        import Config
from evoibs.run.id_allocator  import IdAllocator
from evoibs.sampling          import Group, SamplingType
from evoibs.strategies        import ContinuousStrategies, DiscreteStrategies, StrategyRepresentation
from evoibs.topology          import Geometry, GeometryType

logger = logging.getLogger(__name__)

# population size above which fitness proportional selection uses rejection sampling
SELECTION_THRESHOLD = 100

# update types that subclasses must implement
_UPDATE_HOOKS = {
    PopulationUpdateType.ECOLOGY: '_update_player_ecology_at',
    PopulationUpdateType.CUSTOM : '_update_player_custom_at',
}

class Population:
    """
    A population of individuals playing a game on a geometry.

    Life cycle: 'check()' validates (and corrects) the parameters, 'reset()'
    builds the geometries and allocates memory, 'init()' draws the initial
    strategies and scores. Afterwards, every call to 'step()' performs one
    update (one synchronous sweep for synchronous updates).

    Public Attributes:
        size:              Number of individuals
        interaction:       Interaction geometry
        reproduction:      Reproduction geometry (may be the interaction geometry)
        strategies:        Strategy representation
        game:              Payoff function
        fitness_map:       Map of scores to fitness
        scores:            Scores of all individuals
        fitness:           Fitness of all individuals
        interactions:      Number of interactions of all individuals
        tags:              Lineage tags of all individuals
        sum_fitness:       Total fitness
        min_score:         Smallest possible score
        max_score:         Largest possible score
        adjust_scores:     Whether scores are adjusted incrementally after strategy changes
        generation:        Number of generations elapsed
        realtime:          Real time elapsed

    Public Methods:
        check():                 Validate parameters, returns True if a reset is required
        reset():                 Build geometries and allocate memory
        init():                  Initial strategies and scores
        step():                  Advance by one update
        advance(generations):    Advance by a number of generations
        pick_fit_focal(excl):    Fitness proportional selection
        draw_fit_neighbor_at(me): Fitness proportional selection among in-neighbours
        mean_traits(), mean_fitness(), mean_score(), trait_histogram(), fitness_histogram():
                                 Population statistics
        score_at(), fitness_at(), interaction_count_at(), tag_at(), strategy_at():
                                 Individual statistics
    """

    def __init__(self, config: Config,
                 rng       : np.random.Generator    | None = None,
                 ids       : IdAllocator            | None = None,
                 strategies: StrategyRepresentation | None = None,
                 game                                      = None):
        """
        Configure the population. Nothing is built until 'reset()' is called.

        Parameters:
            config:     Stores configuration parameters
            rng:        random number generator (created from 'config.seed' if None)
            ids:        allocator of lineage tags (a new allocator if None)
            strategies: strategy representation (created from the configuration if None)
            game:       payoff function (created from the configuration if None)
        """
        self._config = config
        self.rng : np.random.Generator = rng if rng is not None else np.random.default_rng(config.seed)
        self._ids: IdAllocator         = ids if ids is not None else IdAllocator()

        self.size        : int      = config.population_size
        self.interaction : Geometry = Geometry.from_config(config)
        self.reproduction: Geometry = self.interaction.derive_reproduction(Geometry.from_config(config, reproduction=True))

        self.strategies: StrategyRepresentation = strategies if strategies is not None else self._create_strategies()
        self.game                               = game if game is not None else self._create_game()

        self.population_update : PopulationUpdateType = config.population_update
        self.player_update     : PlayerUpdateType     = config.player_update
        self.player_noise      : float                = config.player_update_noise
        self.player_error      : float                = config.player_update_error
        self.n_group           : int                  = config.interaction_group_size
        self.n_interactions    : int                  = config.n_interactions
        self.score_averaged    : bool                 = config.score_averaged
        self.score_reset_always: bool                 = config.score_reset_always
        self.migration_type    : MigrationType        = config.migration_type
        self.migration_prob    : float                = config.migration_prob
        self.mutation_prob     : float                = config.mutation_prob
        self.fitness_map       : FitnessMap           = FitnessMap(config.fitness_map,
                                                                   config.baseline_fitness,
                                                                   config.selection_strength)

        self.interaction_group: Group = Group(self.rng, config.interaction_sampling, self.n_group - 1)
        self.reference_group  : Group = Group(self.rng, config.reference_sampling, config.reference_group_size)

        self.adjust_scores: bool  = False
        self.min_score    : float = 0.0
        self.max_score    : float = 0.0

        self.scores      : np.ndarray = None
        self.fitness     : np.ndarray = None
        self.interactions: np.ndarray = None
        self.tags        : np.ndarray = None
        self._next_tags  : np.ndarray = None
        self.sum_fitness : float      = 0.0
        self._max_idx    : int        = 0
        self._synchronous: bool       = False

        self.generation: float = 0.0
        self.realtime  : float = 0.0

    def _create_strategies(self) -> StrategyRepresentation:
        config = self._config
        if config.strategy_type == "discrete":
            return DiscreteStrategies(self.rng, config.n_types, config.init_frequencies)
        elif config.strategy_type == "continuous":
            return ContinuousStrategies(self.rng,
                                        n_traits      = config.n_traits,
                                        trait_min     = config.trait_min,
                                        trait_max     = config.trait_max,
                                        init_type     = config.init_type,
                                        init_mean     = config.init_mean,
                                        init_sdev     = config.init_sdev,
                                        mutation_type = config.mutation_type,
                                        mutation_sdev = config.mutation_sdev)
        raise RuntimeError("bad 'strategy_type' in configuration file")

    def _create_game(self):
        if isinstance(self.strategies, DiscreteStrategies):
            return MatrixGame.from_config(self._config)
        return ContinuousSnowdrift.from_config(self._config)

    @property
    def pairwise(self) -> bool:
        return self.n_group == 2

    @property
    def inv_noise(self) -> float:
        """Inverse of the noise of imitation updates (negative for zero noise)."""
        if self.player_noise < 1e-8:
            return -1.0
        return 1.0 / self.player_noise

    @property
    def is_moran(self) -> bool:
        return self.population_update.is_moran

    # ------------------------------------------------------------------
    # check, reset and init
    # ------------------------------------------------------------------

    def check(self) -> bool:
        """
        Validate all parameters. Infeasible combinations are corrected
        and the corrections are logged.

        Returns:
            True if the corrections require a reset
        """
        reset = False
        if self.size < 1:
            logger.warning(f"population size {self.size} is not admissible - using 100")
            self.size = 100
            reset = True

        # geometries may require special population sizes
        self.interaction.size = self.size
        reset |= self.interaction.check()
        self.size = self.interaction.size
        if self.reproduction is not self.interaction:
            self.reproduction.size = self.size
            reset |= self.reproduction.check()
            if self.reproduction.size != self.size:
                logger.warning(f"reproduction geometry requires population size {self.reproduction.size} "
                               f"(interaction geometry {self.size}) - using interaction geometry")
                self.reproduction = self.interaction
                reset = True

        if self.n_group < 2:
            logger.warning(f"interaction group size {self.n_group} is not admissible - using 2 (pairwise)")
            self.n_group = 2
            reset = True
        self.interaction_group.n_sampled = self.n_group - 1

        interaction = self.interaction
        if (interaction.type is GeometryType.SQUARE and interaction.connectivity > 8
                and self.interaction_group.sampling is SamplingType.ALL and 2 < self.n_group < 9):
            logger.warning("square interaction geometry has incompatible interaction pattern and neighbourhood size"
                           " - using random sampling of interaction partners")
            self.interaction_group.sampling = SamplingType.COUNT
        if (interaction.type is GeometryType.CUBE and self.interaction_group.sampling is SamplingType.ALL
                and 2 < self.n_group <= interaction.connectivity):
            logger.warning("cubic interaction geometry has incompatible interaction pattern and neighbourhood size"
                           " - using random sampling of interaction partners")
            self.interaction_group.sampling = SamplingType.COUNT
        if (interaction.type is GeometryType.HIERARCHY and self.interaction_group.sampling is SamplingType.COUNT
                and self.n_group != 2):
            logger.warning("hierarchical sampling of interaction groups requires pairwise interactions"
                           " - interacting with all neighbours")
            self.interaction_group.sampling = SamplingType.ALL

        hook = _UPDATE_HOOKS.get(self.population_update)
        if hook is not None and getattr(type(self), hook) is getattr(Population, hook):
            logger.warning(f"population update '{self.population_update.value}' requires a subclass"
                           f" providing '{hook}' - using asynchronous updates")
            self.population_update = PopulationUpdateType.ASYNC
            reset = True

        reproduction = self.reproduction
        if self.player_update is PlayerUpdateType.BEST_REPLY and not self.is_moran:
            if not self.strategies.supports_best_reply or reproduction.type is not GeometryType.MEANFIELD:
                logger.warning("best-reply updates require discrete strategies in well-mixed populations"
                               " - using imitate updates")
                self.player_update = PlayerUpdateType.IMITATE
                reset = True
        if not self.is_moran and reproduction.type is GeometryType.MEANFIELD:
            if self.player_update is PlayerUpdateType.BEST_REPLY:
                # best-replies in well-mixed populations consider everyone
                self.reference_group.sampling = SamplingType.NONE
            elif self.reference_group.sampling is SamplingType.ALL:
                logger.warning("reference type 'all' unfeasible in well-mixed populations - using 'count'")
                self.reference_group.sampling = SamplingType.COUNT
        if (reproduction.type is GeometryType.HIERARCHY and self.reference_group.sampling is SamplingType.COUNT
                and self.reference_group.n_sampled != 1):
            logger.warning("hierarchical sampling of references requires a single reference - using 1")
            self.reference_group.n_sampled = 1

        self._check_migration()
        self._check_adjust_scores()

        self._update_min_max_scores()
        if self.is_moran:
            self._check_moran()
        return reset

    def _check_migration(self):
        if self.migration_prob < 1e-10:
            self.migration_type = MigrationType.NONE
        if self.migration_type is not MigrationType.NONE:
            if not self.interaction.is_undirected:
                logger.warning("no migration on directed graphs")
                self.migration_type = MigrationType.NONE
            elif self.reproduction is not self.interaction:
                logger.warning("no migration on graphs with different interaction and reproduction neighbourhoods")
                self.migration_type = MigrationType.NONE
            elif self.interaction.type is GeometryType.MEANFIELD:
                logger.warning("no migration in well-mixed populations")
                self.migration_type = MigrationType.NONE
        if self.migration_type is MigrationType.NONE:
            self.migration_prob = 0.0

    def _can_adjust_scores(self) -> bool:
        """
        Scores can be adjusted incrementally if individuals interact with all their
        neighbours, the population is structured and scores are always reset.
        """
        geometry = self.interaction
        return not (geometry.type is GeometryType.MEANFIELD
                    or (geometry.type is GeometryType.HIERARCHY and geometry.subgeometry is GeometryType.MEANFIELD)
                    or self.interaction_group.sampling is not SamplingType.ALL
                    or not self.score_reset_always)

    def _check_adjust_scores(self):
        self.adjust_scores = self._can_adjust_scores()
        if not self.adjust_scores and not self.score_averaged:
            logger.warning("random sampling of interaction partners is incompatible with accumulated scores"
                           " (unbounded scores) - using averaged scores")
            self.score_averaged = True
            self.adjust_scores  = self._can_adjust_scores()

    def _check_moran(self):
        fmap = self.fitness_map
        if fmap(self.min_score) < 0.0:
            fmap.type     = FitnessMapType.STATIC
            fmap.baseline = -fmap.selection * self.min_score
            logger.warning(f"Moran updates require fitness >= 0 (score range [{self.min_score:.6g}, {self.max_score:.6g}])"
                           f" - using static fitness map with baseline {fmap.baseline:.6g}")
            self._update_min_max_scores()
            if fmap(self.min_score) < 0.0:
                raise RuntimeError(f"adjustment of baseline fitness failed (minimal fitness {fmap(self.min_score):.6g})")
        # the reference group picks the neighbour to replace (birth-death)
        self.reference_group.sampling  = SamplingType.COUNT
        self.reference_group.n_sampled = 1

    def _process_min_max_score(self, value: float, is_min: bool) -> float:
        """
        Convert the extremal payoff of a single interaction into the extremal score.
        """
        if self.score_averaged:
            return value
        if self.adjust_scores:
            if self.pairwise:
                geometry = self.interaction
                if geometry.min_out + geometry.max_out > 0:
                    if is_min:
                        degree = geometry.max_out if value < 0.0 else geometry.min_out
                    else:
                        degree = geometry.max_out if value > 0.0 else geometry.min_out
                    return degree * 2 * self.n_interactions * value
                return 2 * self.n_interactions * (self.size - 1) * value
            return self.n_interactions * self.n_group * value
        raise RuntimeError("accumulated scores require interactions with all neighbours (unbounded scores)")

    def _update_min_max_scores(self):
        self.min_score = self._process_min_max_score(self.strategies.min_score(self.game), True)
        self.max_score = self._process_min_max_score(self.strategies.max_score(self.game), False)

    def min_mono_score(self) -> float:
        return self._process_min_max_score(self.strategies.min_mono_score(self.game), True)

    def max_mono_score(self) -> float:
        return self._process_min_max_score(self.strategies.max_mono_score(self.game), False)

    def reset(self):
        """
        Build the geometries and allocate memory. Assumes that 'check()' has been called.
        """
        self.interaction.init(self.rng)
        self.interaction.rewire(self.rng)
        self.interaction.evaluate()
        if self.reproduction is not self.interaction:
            self.reproduction.init(self.rng)
            self.reproduction.rewire(self.rng)
            self.reproduction.evaluate()

        # randomized constructions may have reverted to well-mixed or turned directed
        self._check_migration()
        if self.adjust_scores and not self._can_adjust_scores():
            self._check_adjust_scores()

        # for accumulated scores the range depends on the degrees of the geometry
        min_score, max_score = self.min_score, self.max_score
        self._update_min_max_scores()
        if abs(min_score - self.min_score) > 1e-8:
            logger.info(f"minimum score has changed to {self.min_score:.6g}, was {min_score:.6g}")
        if abs(max_score - self.max_score) > 1e-8:
            logger.info(f"maximum score has changed to {self.max_score:.6g}, was {max_score:.6g}")

        self.alloc()

    def alloc(self):
        """
        Allocate the arrays of the population. Existing arrays are kept
        if the population size is unchanged.
        """
        if self.scores is None or len(self.scores) != self.size:
            self.scores       = np.zeros(self.size)
            self.fitness      = np.zeros(self.size)
            self.interactions = np.zeros(self.size, dtype=int)
            self.tags         = np.zeros(self.size, dtype=int)
            self._next_tags   = np.zeros(self.size, dtype=int)
        self.strategies.alloc(self.size)

        max_group = max(self.interaction.max_in, self.interaction.max_out,
                        self.reproduction.max_in, self.reproduction.max_out, self.n_group) + 1
        self.interaction_group.alloc(max_group)
        self.reference_group.alloc(max_group)

    def init(self):
        """
        Draw the initial strategies, assign fresh lineage tags and determine all scores.
        """
        self.strategies.init()
        self.tags[:]       = [self._ids.next_id() for _ in range(self.size)]
        self._next_tags[:] = self.tags
        self.reset_scores()
        self.update_scores()
        self.generation = 0.0
        self.realtime   = 0.0

    # ------------------------------------------------------------------
    # strategies
    # ------------------------------------------------------------------

    def update_from_model_at(self, me: int, model: int):
        """Propose the strategy (and lineage) of 'model' for 'me'."""
        self.strategies.update_from_model_at(me, model)
        self._next_tags[me] = self.tags[model]

    def _mutate_at(self, me: int, switched: bool):
        # mutants found a new lineage
        self.strategies.mutate_at(me, switched)
        self._next_tags[me] = self._ids.next_id()

    def _commit_strategy_at(self, me: int):
        self.strategies.commit_at(me)
        self.tags[me] = self._next_tags[me]

    def _prepare_strategies(self):
        self.strategies.prepare()
        self._next_tags[:] = self.tags

    def _commit_strategies(self):
        self.strategies.commit()
        self.tags[:] = self._next_tags

    def _swap_strategies(self, a: int, b: int):
        self.strategies.swap_at(a, b)
        self._next_tags[a], self._next_tags[b] = self.tags[b], self.tags[a]

    def _mutation_occurs(self) -> bool:
        return self.mutation_prob >= 1.0 or (self.mutation_prob > 0.0 and self.rng.random() < self.mutation_prob)

    # ------------------------------------------------------------------
    # score bookkeeping
    # ------------------------------------------------------------------

    def _update_score_at(self, index: int, score: float, incr: int = 1):
        """
        Add (incr > 0) or remove (incr < 0) 'score' as the result of
        'abs(incr)' interactions, or set the score (incr == 0).
        """
        before = self.scores[index]
        if incr == 0:
            self.scores[index] = score
        else:
            if incr < 0:
                score = -score
            count = self.interactions[index]
            if count + incr < 0:
                self.fail(f"interaction count of individual {index} turned negative")
            if self.score_averaged:
                self.scores[index] = (before * count + score) / max(1, count + incr)
            else:
                self.scores[index] += score
            self.interactions[index] += incr
        self._update_eff_score_range(index, before, self.scores[index])
        self._update_fitness_at(index)

    def _remove_score_at(self, index: int, score: float, incr: int = 1):
        self._update_score_at(index, score, -incr)

    def _update_fitness_at(self, index: int):
        after = self.fitness_map(self.scores[index])
        diff  = after - self.fitness[index]
        self.fitness[index] = after
        self.sum_fitness   += diff
        # large decreases amplify rounding errors
        if -diff > self.sum_fitness:
            self.sum_fitness = float(self.fitness.sum())

    def _reset_score_at(self, index: int):
        before = self.scores[index]
        self.scores[index]       = 0.0
        self.interactions[index] = 0
        self._update_eff_score_range(index, before, 0.0)
        self.sum_fitness   -= self.fitness[index]
        self.fitness[index] = 0.0

    def _swap_scores_at(self, a: int, b: int):
        self.scores[a], self.scores[b]             = self.scores[b], self.scores[a]
        self.interactions[a], self.interactions[b] = self.interactions[b], self.interactions[a]
        self.fitness[a], self.fitness[b]           = self.fitness[b], self.fitness[a]
        if self._max_idx == a:
            self._max_idx = b
        elif self._max_idx == b:
            self._max_idx = a

    def reset_scores(self):
        self.scores[:]       = 0.0
        self.fitness[:]      = 0.0
        self.interactions[:] = 0
        self.sum_fitness     = 0.0
        self._max_idx        = 0

    def update_scores(self):
        """
        Determine the scores of all individuals from scratch.
        """
        for me in range(self.size):
            self._play_game_sync_at(me)
            self._update_fitness_at(me)
        self._max_idx = int(np.argmax(self.scores))

    def set_scores(self, scores, interactions):
        """
        Set the scores and interaction counts of all individuals
        (e.g. when restoring a saved state). Fitness is recalculated.
        """
        self.scores[:]       = scores
        self.interactions[:] = interactions
        self.fitness[:]      = self.fitness_map(self.scores)
        self.sum_fitness     = float(self.fitness.sum())
        self._max_idx        = int(np.argmax(self.scores))

    def _update_eff_score_range(self, index: int, before: float, after: float):
        """
        Maintain the index of the highest score. Scans the population
        only if the score of the current maximum decreases.
        """
        if self._synchronous:
            return
        if after > before:
            if index != self._max_idx and after > self.scores[self._max_idx]:
                self._max_idx = index
        elif after < before and index == self._max_idx:
            self._max_idx = int(np.argmax(self.scores))

    def _second_score(self, excl: int) -> float:
        """
        Second highest score, the highest among all individuals but 'excl'.
        """
        if self.size < 2:
            return self.scores[excl]
        return float(np.max(np.delete(self.scores, excl)))

    def fail(self, message: str):
        """
        Log a dump of all scores and raise a RuntimeError. Bookkeeping
        invariants were violated and the simulation cannot continue.
        """
        lines = [f"{message} (generation {self.generation:g})"]
        for n in range(self.size):
            lines.append(f"score[{n}]={self.scores[n]:.6g} -> fitness {self.fitness[n]:.6g}, "
                         f"interactions[{n}]={self.interactions[n]}")
        lines.append(f"sum_fitness={self.sum_fitness:.6g} (should be {self.fitness.sum():.6g}), "
                     f"{self.fitness_map}")
        dump = "\n".join(lines)
        logger.error(dump)
        raise RuntimeError(dump)

    # ------------------------------------------------------------------
    # interactions
    # ------------------------------------------------------------------

    def _sequential_group_scores(self, me: int, members: np.ndarray) -> tuple[float, np.ndarray]:
        """
        Interact with consecutive subgroups of 'n_group - 1' neighbours,
        one subgroup starting at every neighbour.
        """
        size   = len(members)
        mine   = 0.0
        theirs = np.zeros(size)
        for n in range(size):
            positions = [(n + i) % size for i in range(self.n_group - 1)]
            score, scores = self.strategies.group_scores(me, members[positions], self.game)
            mine += score
            np.add.at(theirs, positions, scores)
        return mine, theirs

    def _play_group_game(self, group: Group):
        """
        Play the game of the focal individual of 'group' with the group members
        and add the payoffs to the scores of all participants.
        """
        me = group.focal
        if group.size <= 0:
            self._update_score_at(me, 0.0)
            return
        members = group.group

        if group.sampling is SamplingType.ALL:
            if self.pairwise:
                mine, theirs = self.strategies.pair_scores(me, members, self.game)
                self._update_score_at(me, mine, group.size)
                for you, score in zip(members, theirs):
                    self._update_score_at(int(you), score)
                return
            if self.n_group < group.size + 1:
                mine, theirs = self._sequential_group_scores(me, members)
                self._update_score_at(me, mine, group.size)
                for you, score in zip(members, theirs):
                    self._update_score_at(int(you), score, self.n_group - 1)
                return
            # interact with the full group
            mine, theirs = self.strategies.group_scores(me, members, self.game)
            self._update_score_at(me, mine)
            for you, score in zip(members, theirs):
                self._update_score_at(int(you), score)
            return

        if group.sampling is SamplingType.COUNT:
            if self.pairwise:
                mine, theirs = self.strategies.pair_scores(me, members, self.game)
                self._update_score_at(me, mine, group.size)
            else:
                mine, theirs = self.strategies.group_scores(me, members, self.game)
                self._update_score_at(me, mine)
            for you, score in zip(members, theirs):
                self._update_score_at(int(you), score)
            return

        raise RuntimeError("bad interaction sampling type")

    def _yalp_pair_game(self, group: Group):
        """
        Undo the pairwise interactions of the focal individual of 'group'.
        The focal score is reset.
        """
        members = group.group
        _, theirs = self.strategies.pair_scores(group.focal, members, self.game)
        self._reset_score_at(group.focal)
        if self.interaction.is_undirected:
            # on undirected graphs every pair interacts twice
            for you, score in zip(members, theirs):
                self._remove_score_at(int(you), 2.0 * score, 2)
            return
        for you, score in zip(members, theirs):
            self._remove_score_at(int(you), score)

    def _yalp_group_game(self, group: Group):
        """
        Undo the group interaction of the focal individual of 'group'.
        """
        me      = group.focal
        members = group.group
        if self.n_group < group.size + 1:
            mine, theirs = self._sequential_group_scores(me, members)
            self._remove_score_at(me, mine, group.size)
            for you, score in zip(members, theirs):
                self._remove_score_at(int(you), score, self.n_group - 1)
            return
        mine, theirs = self.strategies.group_scores(me, members, self.game)
        self._remove_score_at(me, mine)
        for you, score in zip(members, theirs):
            self._remove_score_at(int(you), score)

    def _play_game_sync_at(self, me: int):
        synchronous = self._synchronous
        self._synchronous = True
        for _ in range(self.n_interactions):
            self._play_group_game(self.interaction_group.pick_at(me, self.interaction, out=True))
        self._synchronous = synchronous

    def _play_game_at(self, me: int):
        """
        Interact with out-neighbours and, on directed graphs, with in-neighbours.
        """
        if self.adjust_scores:
            raise RuntimeError("replaying games is incompatible with adjusting scores")
        for _ in range(self.n_interactions):
            self._play_group_game(self.interaction_group.pick_at(me, self.interaction, out=True))
        if self.interaction.is_undirected:
            return
        for _ in range(self.n_interactions):
            self._play_group_game(self.interaction_group.pick_at(me, self.interaction, out=False))

    def _yalp_play_neighborhood(self, me: int, undo: bool):
        """
        Undo (or replay) all group interactions involving 'me': the group of 'me'
        and the groups of all individuals that include 'me' in their group.
        """
        geometry = self.interaction
        group    = self.interaction_group
        play     = self._yalp_group_game if undo else self._play_group_game
        play(group.set_group_at(me, geometry.out[me]))
        for you in geometry.in_[me]:
            play(group.set_group_at(you, geometry.out[you]))

    def _adjust_game_scores_at(self, me: int):
        """
        Commit the strategy of 'me' and adjust the scores of 'me' and its
        neighbours: remove the payoffs of the old strategy, add the payoffs
        of the new strategy.
        """
        if self.strategies.is_same_strategy(me):
            self._commit_strategy_at(me)
            return

        geometry = self.interaction
        group    = self.interaction_group
        if geometry.is_undirected:
            if self.pairwise:
                group.set_group_at(me, geometry.out[me])
                self._yalp_pair_game(group)
                self._commit_strategy_at(me)
                # once as focal, once as opponent
                self._play_group_game(group)
                self._play_group_game(group)
                return
            self._yalp_play_neighborhood(me, undo=True)
            self._commit_strategy_at(me)
            self._yalp_play_neighborhood(me, undo=False)
            return

        if self.pairwise:
            self._yalp_pair_game(group.set_group_at(me, geometry.out[me]))
            self._yalp_pair_game(group.set_group_at(me, geometry.in_[me]))
            self._commit_strategy_at(me)
            self._play_group_game(group.set_group_at(me, geometry.out[me]))
            self._play_group_game(group.set_group_at(me, geometry.in_[me]))
            return
        self._yalp_play_neighborhood(me, undo=True)
        self._commit_strategy_at(me)
        self._yalp_play_neighborhood(me, undo=False)

    # ------------------------------------------------------------------
    # selection
    # ------------------------------------------------------------------

    def _random_individual(self, excl: int = -1) -> int:
        if excl < 0:
            return int(self.rng.integers(self.size))
        pick = int(self.rng.integers(self.size - 1))
        return pick + 1 if pick >= excl else pick

    def pick_fit_focal(self, excl: int = -1) -> int:
        """
        Pick an individual with probability proportional to its fitness.

        Parameters:
            excl: individual to exclude (none if negative)

        Returns:
            Index of the selected individual
        """
        if not 0 <= excl < self.size:
            excl = -1
        if self.sum_fitness < 1e-8:
            return self._random_individual(excl)

        if self.size >= SELECTION_THRESHOLD:
            # rejection sampling against the maximum fitness
            if excl >= 0 and excl == self._max_idx:
                max_fitness = self.fitness_map(self._second_score(excl))
            else:
                max_fitness = self.fitness[self._max_idx]
            while True:
                candidate = self._random_individual(excl)
                if self.rng.random() * max_fitness <= self.fitness[candidate]:
                    return candidate

        total = self.sum_fitness - (self.fitness[excl] if excl >= 0 else 0.0)
        hit   = self.rng.random() * total
        last  = -1
        for n in range(self.size):
            if n == excl:
                continue
            hit -= self.fitness[n]
            if hit < 0.0:
                return n
            last = n
        # rounding errors
        if hit < 1e-6 and last >= 0 and self.fitness[last] > 1e-6:
            return last
        self.fail(f"failed to pick parent (hit={hit:.6g})")

    def draw_fit_neighbor_at(self, me: int) -> int:
        """
        Pick an in-neighbour of 'me' in the reproduction geometry with
        probability proportional to its fitness.

        Returns:
            Index of the selected neighbour, or -1 if 'me' has no in-neighbours
        """
        if self.reproduction.type is GeometryType.MEANFIELD:
            return self.pick_fit_focal(me)

        neighbors = self.reproduction.in_[me]
        if len(neighbors) == 0:
            return -1
        if len(neighbors) == 1:
            return neighbors[0]
        weights = self.fitness[neighbors]
        total   = float(weights.sum())
        if total <= 1e-8:
            return neighbors[int(self.rng.integers(len(neighbors)))]

        hit = self.rng.random() * total
        for neighbor, weight in zip(neighbors, weights):
            hit -= weight
            if hit < 0.0:
                return neighbor
        if hit < 1e-6 and weights[-1] > 1e-6:
            return neighbors[-1]
        self.fail(f"failed to pick neighbour of {me} (hit={hit:.6g}, total={total:.6g})")

    # ------------------------------------------------------------------
    # updates
    # ------------------------------------------------------------------

    def _update_player_at(self, me: int) -> bool:
        """
        Update the strategy of 'me' (proposed, not committed).

        Returns:
            True if the score of 'me' needs to be reset
        """
        # models are upstream: in-neighbours in the reproduction geometry
        group = self.reference_group.pick_at(me, self.reproduction, out=False)
        if group.size <= 0 and self.player_update is not PlayerUpdateType.BEST_REPLY:
            return False

        rule = update_rules.RULES.get(self.player_update)
        if rule is None:
            raise RuntimeError("bad player update type")
        switched = rule(self, me, group.group)

        if self._mutation_occurs():
            self._mutate_at(me, switched)
            return True
        if self.score_reset_always:
            return switched
        changed = not self.strategies.is_same_strategy(me)
        if not changed:
            self._next_tags[me] = self.tags[me]
        return changed

    def _update_player_async_at(self, me: int):
        if self.adjust_scores:
            if self._update_player_at(me):
                self._adjust_game_scores_at(me)
            return
        if self._update_player_at(me):
            self._reset_score_at(me)
            self._commit_strategy_at(me)
        self._play_game_at(me)

    def _update_player_moran(self, source: int, dest: int):
        """
        The offspring of 'source' replaces 'dest'.
        """
        if self.adjust_scores:
            if self._mutation_occurs():
                self.update_from_model_at(dest, source)
                self._mutate_at(dest, True)
                self._adjust_game_scores_at(dest)
                return
            if self.strategies.have_same_strategy(source, dest):
                return
            self.update_from_model_at(dest, source)
            self._adjust_game_scores_at(dest)
            return

        if self._mutation_occurs():
            self.update_from_model_at(dest, source)
            self._mutate_at(dest, True)
        elif not self.strategies.have_same_strategy(source, dest):
            self.update_from_model_at(dest, source)
        else:
            if self.score_reset_always:
                self._reset_score_at(dest)
            self._play_game_at(dest)
            return
        self._reset_score_at(dest)
        self._commit_strategy_at(dest)
        self._play_game_at(dest)

    def _update_player_moran_birth_death(self):
        parent = self.pick_fit_focal()
        # offspring are downstream: out-neighbours in the reproduction geometry
        group = self.reference_group.pick_at(parent, self.reproduction, out=True)
        if group.size <= 0:
            return
        self._update_player_moran(parent, int(group.group[0]))

    def _update_player_moran_death_birth(self):
        vacant = self._random_individual()
        parent = self.draw_fit_neighbor_at(vacant)
        if parent < 0:
            return
        self._update_player_moran(parent, vacant)

    def _update_player_ecology_at(self, me: int) -> float:
        """
        Ecological update of individual 'me'. Must be provided by subclasses.

        Returns:
            Real time increment
        """
        raise NotImplementedError("ecological updates must be implemented by a subclass")

    def _update_player_custom_at(self, me: int) -> float:
        """
        Custom update of individual 'me'. Must be provided by subclasses.

        Returns:
            Real time increment
        """
        raise NotImplementedError("custom updates must be implemented by a subclass")

    def _update_player_swap(self, a: int, b: int):
        """
        Individuals 'a' and 'b' swap places.
        """
        self._swap_strategies(a, b)
        if self._synchronous:
            self._commit_strategy_at(a)
            self._commit_strategy_at(b)
            return
        if self.adjust_scores:
            if self.strategies.have_same_strategy(a, b):
                self._next_tags[a], self._next_tags[b] = self.tags[a], self.tags[b]
                return
            self._adjust_game_scores_at(a)
            self._adjust_game_scores_at(b)
            return
        self._commit_strategy_at(a)
        self._commit_strategy_at(b)
        self._swap_scores_at(a, b)

    def _migrate(self):
        if self.migration_type is MigrationType.DIFFUSION:
            migrant   = self._random_individual()
            neighbors = self.interaction.out[migrant]
            if not neighbors:
                return
            self._update_player_swap(migrant, neighbors[int(self.rng.integers(len(neighbors)))])
        elif self.migration_type is MigrationType.BIRTH_DEATH:
            migrant = self.pick_fit_focal()
            self._update_player_moran(migrant, self._random_individual(migrant))
        elif self.migration_type is MigrationType.DEATH_BIRTH:
            vacant = self._random_individual()
            self._update_player_moran(self.pick_fit_focal(vacant), vacant)
        elif self.migration_type is not MigrationType.NONE:
            raise RuntimeError("bad migration type")

    def _realtime_increment(self) -> float:
        # real time only advances while the total fitness is positive
        return 1.0 / self.sum_fitness if self.sum_fitness > 0.0 else 0.0

    def step(self) -> float:
        """
        Advance the population by one update: a single individual for
        asynchronous and Moran updates, everyone for synchronous updates.

        Returns:
            Real time increment
        """
        if self.population_update is PopulationUpdateType.SYNC:
            return self._step_sync()

        if self.migration_prob > 0.0 and self.rng.random() < self.migration_prob:
            incr = self._realtime_increment()
            self._migrate()
        elif self.population_update is PopulationUpdateType.ASYNC:
            incr = self._realtime_increment()
            self._update_player_async_at(self._random_individual())
        elif self.population_update is PopulationUpdateType.MORAN_BIRTHDEATH:
            incr = self._realtime_increment()
            self._update_player_moran_birth_death()
        elif self.population_update is PopulationUpdateType.MORAN_DEATHBIRTH:
            incr = self._realtime_increment()
            self._update_player_moran_death_birth()
        elif self.population_update is PopulationUpdateType.ECOLOGY:
            incr = self._update_player_ecology_at(self._random_individual())
        elif self.population_update is PopulationUpdateType.CUSTOM:
            incr = self._update_player_custom_at(self._random_individual())
        else:
            raise RuntimeError("bad population update type")

        self.generation += 1.0 / self.size
        self.realtime   += incr
        return incr

    def _step_sync(self) -> float:
        """
        Synchronous sweep: all individuals update based on the same snapshot,
        all changes are committed at once and all scores are recalculated.
        """
        incr = self.size * self._realtime_increment()
        self._synchronous = True
        self._prepare_strategies()
        for me in range(self.size):
            self._update_player_at(me)
        self._commit_strategies()
        if self.migration_type is not MigrationType.NONE:
            for _ in range(int(self.rng.binomial(self.size, self.migration_prob))):
                self._migrate()
        self.reset_scores()
        self.update_scores()
        self._synchronous = False

        self.generation += 1.0
        self.realtime   += incr
        return incr

    def advance(self, generations: float = 1.0) -> float:
        """
        Advance the population by 'generations' generations
        (size * generations updates for asynchronous updates).

        Returns:
            Real time increment
        """
        if self.population_update is PopulationUpdateType.SYNC:
            n_steps = int(round(generations))
        else:
            n_steps = int(round(generations * self.size))
        start = self.realtime
        for _ in range(n_steps):
            self.step()
        return self.realtime - start

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------

    def mean_traits(self) -> tuple[np.ndarray, np.ndarray]:
        """Mean and standard deviation of the traits (frequencies for discrete strategies)."""
        return self.strategies.mean_traits()

    def mean_fitness(self) -> tuple[float, float]:
        return float(self.fitness.mean()), float(self.fitness.std())

    def mean_score(self) -> tuple[float, float]:
        return float(self.scores.mean()), float(self.scores.std())

    def trait_histogram(self, bins: int = 100) -> np.ndarray:
        return self.strategies.histogram(bins)

    def fitness_histogram(self, bins: int = 100) -> np.ndarray:
        """
        Frequencies of fitness values in 'bins' equally sized
        bins spanning the range of possible fitness values.
        """
        low, high = sorted((float(self.fitness_map(self.min_score)), float(self.fitness_map(self.max_score))))
        if high - low < 1e-8:
            high = low + 1.0
        counts, _ = np.histogram(np.clip(self.fitness, low, high), bins=bins, range=(low, high))
        return counts / self.size

    def score_at(self, index: int) -> float:
        return float(self.scores[index])

    def fitness_at(self, index: int) -> float:
        return float(self.fitness[index])

    def interaction_count_at(self, index: int) -> int:
        return int(self.interactions[index])

    def tag_at(self, index: int) -> int:
        return int(self.tags[index])

    def strategy_at(self, index: int):
        return self.strategies.value_at(index)

    def is_monomorphic(self) -> bool:
        return self.strategies.is_monomorphic()

    def __repr__(self) -> str:
        return (f"Population(size={self.size}, {self.population_update.value}/{self.player_update.value}, "
                f"interaction={self.interaction!r})")
