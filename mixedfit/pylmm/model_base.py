#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 09:12:40 2026

@author: lukepinkel
"""
import numpy as np
from abc import ABCMeta, abstractmethod
from ..utilities import output


class LinearMixedModel(metaclass=ABCMeta):
    """
    Abstract base class for linear mixed models.

    A variant provides the accessors below; the residual sums, fixed-effect
    extraction, deviance and REML criterion, summary and the scalar
    variance-component formula are written once here in terms of them.

    Subclasses must implement:
        obs, exptd, sqrtwts, L, Zt, size, X, RX, is_fit, is_reml, lower,
        thvec, uvec, betavec, set_fit, unset_fit, _set_reml_flag,
        objective, fit, grplevels, varcorr, names
    """

    @abstractmethod
    def obs(self):
        """Observed response vector (a reference, not a copy)."""
        pass

    @abstractmethod
    def exptd(self):
        """Mean response at the current parameter values."""
        pass

    @abstractmethod
    def sqrtwts(self):
        """Per-observation residual scale factors, length 0 when unweighted."""
        pass

    @abstractmethod
    def L(self):
        """Matrix blocks that together make up the random-effects Cholesky factor."""
        pass

    @abstractmethod
    def Zt(self):
        """Transpose of the random-effects design matrix."""
        pass

    @abstractmethod
    def size(self):
        """n, p, q and the number of random-effects terms."""
        pass

    @abstractmethod
    def X(self):
        pass

    @abstractmethod
    def RX(self):
        """Upper Cholesky factor of the downdated X'X."""
        pass

    @abstractmethod
    def is_fit(self):
        pass

    @abstractmethod
    def is_reml(self):
        pass

    @abstractmethod
    def lower(self):
        pass

    @abstractmethod
    def thvec(self):
        pass

    @abstractmethod
    def uvec(self):
        """Current spherical conditional modes; does not fit the model."""
        pass

    @abstractmethod
    def betavec(self):
        """Current fixed effects; does not fit the model."""
        pass

    @abstractmethod
    def set_fit(self):
        pass

    @abstractmethod
    def unset_fit(self):
        pass

    @abstractmethod
    def _set_reml_flag(self, reml):
        pass

    @abstractmethod
    def objective(self, theta):
        """
        Install theta, update beta, u and mu, and return the deviance or
        REML criterion.
        """
        pass

    @abstractmethod
    def fit(self):
        pass

    @abstractmethod
    def grplevels(self):
        pass

    @abstractmethod
    def varcorr(self):
        pass

    @abstractmethod
    def names(self):
        """dict with 'fe', 'groups' and 're' labels."""
        pass

    def wrss(self):
        y, mu, wt = self.obs(), self.exptd(), self.sqrtwts()
        r = y - mu
        if len(wt) > 0:
            r = r / wt
        return np.dot(r, r)

    def pwrss(self):
        u = self.uvec()
        return self.wrss() + np.dot(u, u)

    def set_reml(self):
        self._set_reml_flag(True)
        return self.unset_fit()

    def unset_reml(self):
        self._set_reml_flag(False)
        return self.unset_fit()

    def fixef(self):
        self.fit()
        return self.betavec()

    def sigma2(self):
        n, p, q, k = self.size()
        return self.pwrss() / float(n - (p if self.is_reml() else 0))

    def deviance(self):
        if self.is_reml():
            self.unset_reml()
        self.fit()
        return self.objective(self.thvec())

    def reml_criterion(self):
        if not self.is_reml():
            self.set_reml()
        self.fit()
        return self.objective(self.thvec())

    def loglike(self):
        self.fit()
        return -self.objective(self.thvec()) / 2.0

    def scalar_varcorr(self):
        """
        Variance components when every random-effects term has a single
        column: theta**2 * sigma2 for each term followed by sigma2.
        """
        self.fit()
        n, p, q, k = self.size()
        return np.r_[self.thvec()**2, 1.0] * (self.pwrss() / float(n - (p if self.is_reml() else 0)))

    def summary(self):
        self.fit()
        reml = self.is_reml()
        criterion = "REML" if reml else "maximum likelihood"
        lines = [f"Linear mixed model fit by {criterion}"]
        oo = self.objective(self.thvec())
        if reml:
            lines.append(f" REML criterion: {oo:.4f}")
        else:
            lines.append(f" logLik: {-oo/2:.4f}, deviance: {oo:.4f}")
        names = self.names()
        vc = output.get_varcorr_table(self.varcorr(), names['groups'], names['re'])
        lines.append("\n  Variance components:")
        lines.append(vc.to_string(index=False))
        n, p, q, k = self.size()
        lines.append(f"\n  Number of obs: {n}; levels of grouping factors: {self.grplevels()}")
        lines.append("\n  Fixed-effects parameters:")
        lines.append(output.get_fixef_table(self.fixef(), index=names['fe']).to_string())
        return "\n".join(lines)

    def __str__(self):
        return self.summary()
