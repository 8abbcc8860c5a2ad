"""
Continuous Snowdrift Module

Classes:
    ContinuousSnowdrift: Snowdrift game with continuous investments
"""

import numpy as np
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from evoibs.run.config import Config

class ContinuousSnowdrift:
    """
    The continuous snowdrift game. An individual investing 'x' into a common
    good, together with a partner investing 'y', receives the benefit B(x+y)
    and pays the cost C(x). Benefits and costs are polynomials without constant
    term:

        B(z) = b1*z + b2*z^2 + ...
        C(x) = c1*x + c2*x^2 + ...

    The defaults (B(z) = 6z - 1.4z^2 and C(x) = 4.56x - 1.6x^2) give rise to
    evolutionary branching. Multiple traits contribute additively.

    Public Attributes:
        benefit_coeffs: Coefficients of the benefit polynomial
        cost_coeffs:    Coefficients of the cost polynomial

    Public Methods:
        benefit(z):               Benefit of the joint investment 'z'
        cost(x):                  Cost of the investment 'x'
        payoff(me, you):          Payoff of investment 'me' against investment 'you'
        group_scores(me, others): Payoffs in a group interaction
    """

    def __init__(self,
                 benefit_coeffs: list[float] = (6.0, -1.4),
                 cost_coeffs   : list[float] = (4.56, -1.6)):
        self.benefit_coeffs: np.ndarray = np.asarray(benefit_coeffs, dtype=float)
        self.cost_coeffs   : np.ndarray = np.asarray(cost_coeffs,    dtype=float)

    @classmethod
    def from_config(cls, config: 'Config') -> 'ContinuousSnowdrift':
        return cls(config.benefit_coeffs, config.cost_coeffs)

    @staticmethod
    def _polynomial(coeffs: np.ndarray, x):
        # coeffs[i] multiplies x^(i+1)
        result = 0.0
        for c in coeffs[::-1]:
            result = (result + c) * x
        return result

    def benefit(self, z):
        return self._polynomial(self.benefit_coeffs, z)

    def cost(self, x):
        return self._polynomial(self.cost_coeffs, x)

    def payoff(self, me, you) -> float:
        me  = np.asarray(me,  dtype=float)
        you = np.asarray(you, dtype=float)
        return float(np.sum(self.benefit(me + you) - self.cost(me)))

    def group_scores(self, me, others) -> tuple[float, np.ndarray]:
        """
        Group interaction as the average of the pairwise interactions
        of the focal with each of the others.

        Returns:
            (payoff of 'me', array of payoffs of the others)
        """
        if len(others) == 0:
            return 0.0, np.zeros(0)
        mine   = [self.payoff(me, you) for you in others]
        theirs = np.array([self.payoff(you, me) for you in others])
        return float(np.mean(mine)), theirs

    def __repr__(self) -> str:
        return f"ContinuousSnowdrift(benefit={self.benefit_coeffs.tolist()}, cost={self.cost_coeffs.tolist()})"
