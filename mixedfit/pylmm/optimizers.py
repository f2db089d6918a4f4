#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Fri Oct 16 14:07:52 2026

@author: lukepinkel
"""
import nlopt
import numpy as np
import scipy as sp
import scipy.optimize
from .errors import ConvergenceError, MixedModelError

_NO_GRAD = np.empty(0)


class NloptMinimizer(object):
    """
    Bound constrained minimizer backed by an NLopt local algorithm, by
    default the derivative-free LN_BOBYQA.

    The objective has NLopt's signature f(x, grad); derivative-free
    algorithms always pass an empty grad.  A roundoff-limited run still
    returns the best point evaluated, with status nlopt.ROUNDOFF_LIMITED.
    """
    def __init__(self, n_par, method='LN_BOBYQA'):
        self.method = method
        self.n_par = n_par
        self.opt = nlopt.opt(getattr(nlopt, method), n_par)
        self.fbest, self.xbest = np.inf, None

    def set_min_objective(self, f):
        def objective(x, grad):
            val = f(x, grad)
            if val < self.fbest:
                self.fbest, self.xbest = val, np.array(x)
            return val
        self.opt.set_min_objective(objective)

    def set_lower_bounds(self, lb):
        self.opt.set_lower_bounds(np.asarray(lb, dtype=float))

    def set_ftol_abs(self, tol):
        self.opt.set_ftol_abs(tol)

    def set_xtol_abs(self, tol):
        self.opt.set_xtol_abs(tol)

    def set_maxeval(self, maxeval):
        self.opt.set_maxeval(int(maxeval))

    def optimize(self, x0):
        self.fbest, self.xbest = np.inf, None
        try:
            xmin = self.opt.optimize(np.asarray(x0, dtype=float))
        except MixedModelError:
            raise
        except nlopt.RoundoffLimited as e:
            if self.xbest is None:
                raise ConvergenceError(f"{self.method} failed: {e}") from e
            return self.fbest, self.xbest.copy(), nlopt.ROUNDOFF_LIMITED
        except RuntimeError as e:
            raise ConvergenceError(f"{self.method} failed: {e}") from e
        status = self.opt.last_optimize_result()
        if status < 0:
            raise ConvergenceError(f"{self.method} failed with status {status}")
        return self.opt.last_optimum_value(), np.asarray(xmin), status


class ScipyMinimizer(object):
    """
    Bound constrained minimizer backed by scipy.optimize.minimize with a
    derivative-free method (Powell or Nelder-Mead).

    The NLopt-style tolerances map onto the method's own options: for
    Powell `ftol_abs` becomes `ftol`, which scipy applies as a relative
    tolerance on f, and `xtol_abs` becomes `xtol`; for Nelder-Mead they
    become the absolute `fatol` and `xatol`.
    """
    tol_names = {'Powell':('ftol', 'xtol'), 'Nelder-Mead':('fatol', 'xatol')}

    def __init__(self, n_par, method='Powell'):
        self.method = method
        self.n_par = n_par
        self.f = None
        self.lb = np.full(n_par, -np.inf)
        self.ftol, self.xtol, self.maxeval = 1e-6, 1e-6, 0
        self.optimizer = None

    def set_min_objective(self, f):
        self.f = f

    def set_lower_bounds(self, lb):
        self.lb = np.asarray(lb, dtype=float)

    def set_ftol_abs(self, tol):
        self.ftol = tol

    def set_xtol_abs(self, tol):
        self.xtol = tol

    def set_maxeval(self, maxeval):
        self.maxeval = int(maxeval)

    def optimize(self, x0):
        fun = lambda x: self.f(x, _NO_GRAD)
        bounds = [(lb if np.isfinite(lb) else None, None) for lb in self.lb]
        ftol_name, xtol_name = self.tol_names[self.method]
        options = {ftol_name:self.ftol, xtol_name:self.xtol}
        if self.maxeval > 0:
            options['maxfev'] = self.maxeval
        optimizer = sp.optimize.minimize(fun, np.asarray(x0, dtype=float),
                                         method=self.method, bounds=bounds,
                                         options=options)
        self.optimizer = optimizer
        if not optimizer.success:
            raise ConvergenceError(f"{self.method} failed: {optimizer.message}")
        return optimizer.fun, np.asarray(optimizer.x), optimizer.status


def get_minimizer(method, n_par):
    """
    Construct the minimizer registered under `method`.

    Parameters
    ----------
    method : str
        'LN_BOBYQA' (or 'bobyqa'), 'Powell' (or 'powell'), 'Nelder-Mead'
        (or 'nelder-mead').
    n_par : int
        Number of parameters.
    """
    if method in ('LN_BOBYQA', 'bobyqa'):
        return NloptMinimizer(n_par, 'LN_BOBYQA')
    elif method in ('Powell', 'powell'):
        return ScipyMinimizer(n_par, 'Powell')
    elif method in ('Nelder-Mead', 'nelder-mead'):
        return ScipyMinimizer(n_par, 'Nelder-Mead')
    raise ValueError(f"Unknown optimizer '{method}'")
