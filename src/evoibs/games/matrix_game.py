"""
Matrix Game Module

Classes:
    MatrixGame: Symmetric game with a finite number of strategy types and a payoff matrix
"""

import numpy as np
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from evoibs.run.config import Config

class MatrixGame:
    """
    A symmetric game between discrete strategy types.
    Entry (a, b) of the payoff matrix is the payoff of type 'a' against type 'b'.

    Public Attributes:
        matrix:  Payoff matrix (n_types x n_types)
        n_types: Number of strategy types

    Public Methods:
        payoff(a, b):               Payoff of type 'a' against type 'b'
        group_scores(me, others):   Payoffs in a group interaction
        min_payoff(active):         Smallest payoff among active types
        max_payoff(active):         Largest payoff among active types
        mono_payoffs():             Payoffs in monomorphic populations
    """

    def __init__(self, matrix):
        """
        Parameters:
            matrix: square payoff matrix (nested lists or numpy array)
        """
        self.matrix : np.ndarray = np.asarray(matrix, dtype=float)
        if self.matrix.ndim != 2 or self.matrix.shape[0] != self.matrix.shape[1]:
            raise ValueError("payoff matrix must be square")
        self.n_types: int = self.matrix.shape[0]

    @classmethod
    def from_config(cls, config: 'Config') -> 'MatrixGame':
        """
        Create the game from the row-major 'payoff_matrix' configuration parameter.
        """
        values = np.asarray(config.payoff_matrix, dtype=float)
        n_types = int(round(np.sqrt(len(values))))
        if n_types * n_types != len(values):
            raise ValueError(f"payoff matrix with {len(values)} entries is not square")
        return cls(values.reshape(n_types, n_types))

    @classmethod
    def prisoners_dilemma(cls, benefit: float = 1.0, cost: float = 0.2) -> 'MatrixGame':
        """Donation game: cooperators (type 0) pay 'cost' to provide 'benefit'."""
        return cls([[benefit - cost, -cost], [benefit, 0.0]])

    @classmethod
    def snowdrift(cls, benefit: float = 1.0, cost: float = 0.6) -> 'MatrixGame':
        """Snowdrift game: cooperators (type 0) share the 'cost' of providing 'benefit'."""
        return cls([[benefit - cost / 2.0, benefit - cost], [benefit, 0.0]])

    def payoff(self, a: int, b: int) -> float:
        return float(self.matrix[a, b])

    def group_scores(self, me: int, others) -> tuple[float, np.ndarray]:
        """
        Group interaction as the average of all pairwise interactions
        among the group members (focal included).

        Returns:
            (payoff of 'me', array of payoffs of the others)
        """
        others = np.asarray(others, dtype=int)
        n = len(others)
        if n == 0:
            return 0.0, np.zeros(0)
        members = np.concatenate(([me], others))
        # each member plays against all other members
        pair    = self.matrix[np.ix_(members, members)]
        totals  = (pair.sum(axis=1) - np.diag(pair)) / n
        return float(totals[0]), totals[1:]

    def min_payoff(self, active=None) -> float:
        sub = self.matrix if active is None else self.matrix[np.ix_(active, active)]
        return float(sub.min())

    def max_payoff(self, active=None) -> float:
        sub = self.matrix if active is None else self.matrix[np.ix_(active, active)]
        return float(sub.max())

    def mono_payoffs(self) -> np.ndarray:
        return np.diag(self.matrix).copy()

    def __repr__(self) -> str:
        return f"MatrixGame({self.matrix.tolist()})"
