import configparser
import os

from evoibs.pool.fitness         import FitnessMapType
from evoibs.pool.update_types    import MigrationType, PlayerUpdateType, PopulationUpdateType
from evoibs.sampling.group       import SamplingType
from evoibs.strategies           import InitType, MutationType
from evoibs.topology             import GeometryType

class Config:

    # options holding enumerations, parsed from their (case-insensitive) names
    _ENUM_OPTIONS = {
        'geometry'                  : GeometryType,
        'subgeometry'               : GeometryType,
        'reproduction_geometry'     : GeometryType,
        'reproduction_subgeometry'  : GeometryType,
        'population_update'         : PopulationUpdateType,
        'player_update'             : PlayerUpdateType,
        'interaction_sampling'      : SamplingType,
        'reference_sampling'        : SamplingType,
        'migration_type'            : MigrationType,
        'fitness_map'               : FitnessMapType,
        'init_type'                 : InitType,
        'mutation_type'             : MutationType,
    }

    # options holding comma-separated lists
    _LIST_OPTIONS = {
        'hierarchy'                 : int,
        'reproduction_hierarchy'    : int,
        'init_frequencies'          : float,
        'payoff_matrix'             : float,
        'benefit_coeffs'            : float,
        'cost_coeffs'               : float,
    }

    @staticmethod
    def _parse_enum(name, enum_type, raw_value):
        """
        Parse an enumeration option from its name.

        Parameters:
            name:      Name of the option (for error messages)
            enum_type: The enumeration
            raw_value: Either a member of 'enum_type', its name (string) or None

        Returns:
            The enumeration member (or None)
        """
        if raw_value is None or isinstance(raw_value, enum_type):
            return raw_value
        try:
            return enum_type(str(raw_value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in enum_type)
            raise ValueError(f"Invalid value '{raw_value}' for '{name}' (allowed: {allowed})") from None

    @staticmethod
    def _parse_list(name, item_type, raw_value):
        """
        Parse a comma-separated list option.

        Parameters:
            name:      Name of the option (for error messages)
            item_type: Type of the list items
            raw_value: Either a comma-separated string, a list or None

        Returns:
            List of items (or None)
        """
        if raw_value is None:
            return None
        if isinstance(raw_value, str):
            raw_value = [item for item in raw_value.split(',') if item.strip()]
        try:
            return [item_type(item) for item in raw_value]
        except ValueError:
            raise ValueError(f"Invalid list '{raw_value}' for '{name}'") from None

    def __init__(self, config_file: str | None = None):
        """
        Initialize Config by parsing an INI file, or create a default Config.

        Parameters:
            config_file: Path to the INI configuration file.
                         If None, creates a default Config for testing or manual setup.
        """

        # Default config for testing/manual setup
        if config_file is None:
            self.population_size = 100
            self.seed            = None
            self.strategy_type   = 'discrete'

            self.geometry             = GeometryType.MEANFIELD
            self.connectivity         = 0.0
            self.fixed_boundary       = False
            self.linear_asymmetry     = 0
            self.petals_count         = 1
            self.petals_amplification = 3
            self.sf_exponent          = -2.0
            self.p_undirected         = 0.0
            self.p_directed           = 0.0
            self.add_undirected       = False
            self.add_directed         = False
            self.hierarchy            = None
            self.hierarchy_weight     = 0.0
            self.subgeometry          = GeometryType.MEANFIELD

            # reproduction geometry inherits every unset (None) option
            for key in ('geometry', 'connectivity', 'fixed_boundary', 'linear_asymmetry',
                        'petals_count', 'petals_amplification', 'sf_exponent',
                        'p_undirected', 'p_directed', 'add_undirected', 'add_directed',
                        'hierarchy', 'hierarchy_weight', 'subgeometry'):
                setattr(self, 'reproduction_' + key, None)

            self.population_update      = PopulationUpdateType.ASYNC
            self.player_update          = PlayerUpdateType.IMITATE
            self.player_update_noise    = 0.1
            self.player_update_error    = 0.0
            self.interaction_sampling   = SamplingType.ALL
            self.interaction_group_size = 2
            self.n_interactions         = 1
            self.reference_sampling     = SamplingType.COUNT
            self.reference_group_size   = 1
            self.score_averaged         = True
            self.score_reset_always     = True
            self.migration_type         = MigrationType.NONE
            self.migration_prob         = 0.0

            self.fitness_map        = FitnessMapType.STATIC
            self.baseline_fitness   = 1.0
            self.selection_strength = 1.0

            self.mutation_prob = 0.0
            self.mutation_type = MutationType.GAUSSIAN
            self.mutation_sdev = 0.01

            self.n_types          = 2
            self.init_frequencies = None
            self.payoff_matrix    = [1.0, -0.2, 1.2, 0.0]

            self.n_traits       = 1
            self.trait_min      = 0.0
            self.trait_max      = 1.0
            self.init_type      = InitType.GAUSSIAN
            self.init_mean      = 0.5
            self.init_sdev      = 0.0
            self.benefit_coeffs = [6.0, -1.4]
            self.cost_coeffs    = [4.56, -1.6]

            self.termination_check     = False
            self.termination_criterion = 'monomorphic'
            self.termination_threshold = 0.0
            self.max_number_generations = 100
            self.report_interval        = 10

            return

        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file '{config_file}' not found")

        parser = configparser.ConfigParser()
        parser.read(config_file)

        # Sentinel for missing default values
        _NO_DEFAULT = object()

        # Helper function to safely parse values
        def get_value(section, key, value_type, default=_NO_DEFAULT):
            try:
                raw_value = parser.get(section, key)
                # "None" unsets optional values; enumerations have a member named "none"
                if raw_value.lower() == 'none' and (value_type is not str or default is None):
                    return None
                if value_type == int:
                    return parser.getint(section, key)
                elif value_type == float:
                    return parser.getfloat(section, key)
                elif value_type == bool:
                    return parser.getboolean(section, key)
                elif value_type == str:
                    return raw_value
            except (configparser.NoSectionError, configparser.NoOptionError):
                if default is not _NO_DEFAULT:
                    return default
                raise

        # [POPULATION]

        # The number of individuals in the population.
        # Some geometries require special sizes, in which case
        # the size is adjusted (and the adjustment is logged).
        self.population_size = get_value('POPULATION', 'population_size', int)

        # Seed of the random number generator.
        # Use "None" for a random seed.
        self.seed = get_value('POPULATION', 'seed', int, default=None)

        # The representation of strategies.
        # Allowed values:
        #   "discrete"   - a finite number of strategy types playing a matrix game
        #   "continuous" - continuous traits playing the continuous snowdrift game
        self.strategy_type = get_value('POPULATION', 'strategy_type', str)

        # [GEOMETRY]

        # The interaction geometry. For the list of all available
        # choices, see the 'geometry_type' module.
        self.geometry = get_value('GEOMETRY', 'geometry', str)

        # The (average) number of neighbours.
        # Ignored by geometries that determine their own connectivity.
        self.connectivity = get_value('GEOMETRY', 'connectivity', float, default=0.0)

        # Whether lattices have fixed (instead of periodic) boundaries.
        self.fixed_boundary = get_value('GEOMETRY', 'fixed_boundary', bool, default=False)

        # The difference between the number of left and right
        # neighbours in linear lattices (directed if non-zero).
        self.linear_asymmetry = get_value('GEOMETRY', 'linear_asymmetry', int, default=0)

        # The number of petals and the amplification of super-stars.
        self.petals_count         = get_value('GEOMETRY', 'petals_count',         int, default=1)
        self.petals_amplification = get_value('GEOMETRY', 'petals_amplification', int, default=3)

        # The exponent of the degree distribution of scale-free graphs.
        self.sf_exponent = get_value('GEOMETRY', 'sf_exponent', float, default=-2.0)

        # The fraction of undirected and directed links to rewire.
        # If 'add_undirected' ('add_directed') is 'True', links are added instead.
        self.p_undirected   = get_value('GEOMETRY', 'p_undirected',   float, default=0.0)
        self.p_directed     = get_value('GEOMETRY', 'p_directed',     float, default=0.0)
        self.add_undirected = get_value('GEOMETRY', 'add_undirected', bool,  default=False)
        self.add_directed   = get_value('GEOMETRY', 'add_directed',   bool,  default=False)

        # The number of units on each level of hierarchical geometries
        # (comma-separated). Only applicable if 'geometry' is "hierarchy".
        self.hierarchy = get_value('GEOMETRY', 'hierarchy', str, default=None)

        # The interaction weight between adjacent hierarchical levels.
        self.hierarchy_weight = get_value('GEOMETRY', 'hierarchy_weight', float, default=0.0)

        # The structure of the demes of hierarchical geometries
        # ("meanfield" or "square").
        self.subgeometry = get_value('GEOMETRY', 'subgeometry', str, default='meanfield')

        # [REPRODUCTION_GEOMETRY] (optional section)

        # Options of the reproduction geometry, same as in [GEOMETRY].
        # Every option that is absent (or "None") is inherited from [GEOMETRY].
        for key, value_type in (('geometry',             str),
                                ('connectivity',         float),
                                ('fixed_boundary',       bool),
                                ('linear_asymmetry',     int),
                                ('petals_count',         int),
                                ('petals_amplification', int),
                                ('sf_exponent',          float),
                                ('p_undirected',         float),
                                ('p_directed',           float),
                                ('add_undirected',       bool),
                                ('add_directed',         bool),
                                ('hierarchy',            str),
                                ('hierarchy_weight',     float),
                                ('subgeometry',          str)):
            setattr(self, 'reproduction_' + key,
                    get_value('REPRODUCTION_GEOMETRY', key, value_type, default=None))

        # [UPDATE]

        # How the population is updated.
        # Allowed values:
        #   "sync"             - all individuals are updated simultaneously
        #   "async"            - one random individual is updated at a time
        #   "moran_birthdeath" - fit individuals reproduce, offspring replace neighbours
        #   "moran_deathbirth" - random individuals die, fit neighbours fill the vacancy
        self.population_update = get_value('UPDATE', 'population_update', str)

        # How individuals update their strategy.
        # Allowed values: "best", "best_random", "best_reply", "proportional",
        # "imitate", "imitate_better", "thermal"
        self.player_update = get_value('UPDATE', 'player_update', str)

        # The noise of imitation updates ("imitate", "imitate_better", "thermal").
        # For "thermal" updates this is the temperature.
        self.player_update_noise = get_value('UPDATE', 'player_update_noise', float, default=0.1)

        # The probability of errors in "imitate" updates.
        self.player_update_error = get_value('UPDATE', 'player_update_error', float, default=0.0)

        # How interaction groups are sampled ("all" neighbours or a "count" of neighbours)
        # and the size of interaction groups, including the focal individual.
        # A group size of 2 corresponds to pairwise interactions.
        self.interaction_sampling   = get_value('UPDATE', 'interaction_sampling',   str, default='all')
        self.interaction_group_size = get_value('UPDATE', 'interaction_group_size', int, default=2)

        # The number of interactions per update ("count" sampling only).
        self.n_interactions = get_value('UPDATE', 'n_interactions', int, default=1)

        # How reference (model) groups are sampled ("none", "all" or "count")
        # and the number of models sampled.
        self.reference_sampling   = get_value('UPDATE', 'reference_sampling',   str, default='count')
        self.reference_group_size = get_value('UPDATE', 'reference_group_size', int, default=1)

        # Whether scores are averaged (instead of accumulated) over interactions.
        self.score_averaged = get_value('UPDATE', 'score_averaged', bool, default=True)

        # Whether scores are reset whenever the strategy is updated
        # (even if the new strategy is the same).
        self.score_reset_always = get_value('UPDATE', 'score_reset_always', bool, default=True)

        # How individuals migrate ("none", "diffusion", "birth_death", "death_birth")
        # and the probability of migration events.
        self.migration_type = get_value('UPDATE', 'migration_type', str,   default='none')
        self.migration_prob = get_value('UPDATE', 'migration_prob', float, default=0.0)

        # [FITNESS]

        # The map from scores to fitness.
        # Allowed values:
        #   "none"        - fitness equals the score
        #   "static"      - baseline + selection * score
        #   "convex"      - baseline + selection * (score - baseline)
        #   "exponential" - baseline * exp(selection * score)
        self.fitness_map        = get_value('FITNESS', 'fitness_map',        str,   default='static')
        self.baseline_fitness   = get_value('FITNESS', 'baseline_fitness',   float, default=1.0)
        self.selection_strength = get_value('FITNESS', 'selection_strength', float, default=1.0)

        # [MUTATION]

        # The probability of a mutation per update.
        self.mutation_prob = get_value('MUTATION', 'mutation_prob', float, default=0.0)

        # The mutation kernel of continuous traits ("uniform" or "gaussian")
        # and the standard deviation of Gaussian mutations (relative to the trait range).
        self.mutation_type = get_value('MUTATION', 'mutation_type', str,   default='gaussian')
        self.mutation_sdev = get_value('MUTATION', 'mutation_sdev', float, default=0.01)

        # [STRATEGIES]

        # Discrete strategies: the number of types, their relative initial
        # frequencies (comma-separated, "None" for uniform) and the payoff
        # matrix (comma-separated, row by row).
        self.n_types          = get_value('STRATEGIES', 'n_types',          int, default=2)
        self.init_frequencies = get_value('STRATEGIES', 'init_frequencies', str, default=None)
        self.payoff_matrix    = get_value('STRATEGIES', 'payoff_matrix',    str, default='1,-0.2,1.2,0')

        # Continuous strategies: the number of traits and the trait range.
        self.n_traits  = get_value('STRATEGIES', 'n_traits',  int,   default=1)
        self.trait_min = get_value('STRATEGIES', 'trait_min', float, default=0.0)
        self.trait_max = get_value('STRATEGIES', 'trait_max', float, default=1.0)

        # The initial distribution of continuous traits ("uniform" or "gaussian"),
        # its mean and its standard deviation.
        self.init_type = get_value('STRATEGIES', 'init_type', str,   default='gaussian')
        self.init_mean = get_value('STRATEGIES', 'init_mean', float, default=0.5)
        self.init_sdev = get_value('STRATEGIES', 'init_sdev', float, default=0.0)

        # The polynomial coefficients (linear term first) of the benefit
        # and cost functions of the continuous snowdrift game.
        self.benefit_coeffs = get_value('STRATEGIES', 'benefit_coeffs', str, default='6.0,-1.4')
        self.cost_coeffs    = get_value('STRATEGIES', 'cost_coeffs',    str, default='4.56,-1.6')

        # [TERMINATION]

        # Whether to stop the run early.
        self.termination_check = get_value('TERMINATION', 'termination_check', bool, default=False)

        # The criterion for stopping the run early.
        # Only applicable if 'termination_check' is 'True'.
        # Allowed values:
        #   "monomorphic"  stop once all individuals share one strategy
        #   "mean_fitness" stop once the mean fitness meets or exceeds 'termination_threshold'
        self.termination_criterion = get_value('TERMINATION', 'termination_criterion', str, default='monomorphic')

        # The mean fitness which when met or exceeded causes the run to end.
        self.termination_threshold = get_value('TERMINATION', 'termination_threshold', float, default=0.0)

        # The number of generations after which to stop the run.
        self.max_number_generations = get_value('TERMINATION', 'max_number_generations', int)

        # The number of generations between progress reports.
        self.report_interval = get_value('TERMINATION', 'report_interval', int, default=10)

    def __setattr__(self, name, value):
        """
        Override 'setattr' to automatically parse enumerations and lists when set.
        This allows users to write config.player_update = "thermal" or
        config.hierarchy = "4,4" and have the value converted.
        """
        if name in self._ENUM_OPTIONS:
            value = self._parse_enum(name, self._ENUM_OPTIONS[name], value)
        elif name in self._LIST_OPTIONS:
            value = self._parse_list(name, self._LIST_OPTIONS[name], value)
        super().__setattr__(name, value)
