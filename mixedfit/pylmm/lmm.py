#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Wed May 11 17:59:10 2022

@author: lukepinkel
"""
import enum
import tqdm
import patsy
import numpy as np
import scipy as sp
import scipy.linalg
from .errors import ValidationError, FactorizationError, UnsupportedOperationError
from .model_base import LinearMixedModel
from .ranef_terms import RandomEffects, RandomEffectTerm
from .sparse_chol import SparseCholeskyFactor
from .optimizers import get_minimizer
from ..utilities.linalg_operations import chol_logdet
from ..utilities.func_utils import profiled_resid_term
from ..utilities.data_utils import _check_shape, _check_np, factor_codes
from ..utilities.formula import parse_random_effects
from ..utilities.optimizer_utils import process_optimizer_kwargs


class FitStatus(enum.Enum):
    UNFIT = 0
    FITTING = 1
    FIT = 2


class PLSState(object):
    """
    Mutable state of a fit: theta and the lambdas (held by the random
    effects), the Cholesky factor, u, beta, mu and the quantities of the
    last evaluation.  Only an ObjectiveEvaluator writes to it.
    """
    def __init__(self, random_effects, n_obs, n_fe):
        self.random_effects = random_effects
        self.system = random_effects.system
        self.factor = SparseCholeskyFactor(self.system.A)
        self.u = np.zeros(random_effects.q)
        self.beta = np.zeros(n_fe)
        self.mu = np.zeros(n_obs)
        self.RX = np.eye(n_fe)
        self.wrss = self.pwrss = np.nan
        self.ldL2 = self.ldRX2 = np.nan
        self.objective = np.nan
        self.n_evals = 0

    @property
    def theta(self):
        return self.random_effects.theta


class ObjectiveEvaluator(object):
    """
    Profiled deviance (ML) or REML criterion as a function of theta.

    Each call installs theta, refactorizes A A' + I, solves the penalized
    least squares problem for u and beta, and leaves all of it in the
    PLSState it was constructed with.
    """
    def __init__(self, state, X, y, sqrtwts=None):
        if sqrtwts is None:
            wX, wy = X, y
        else:
            wX, wy = X / sqrtwts[:, np.newaxis], y / sqrtwts
        self.state = state
        self.X, self.y, self.sqrtwts = X, y, sqrtwts
        self.wX, self.wy = wX, wy
        self.XtX = wX.T.dot(wX)
        self.Xty = wX.T.dot(wy)
        self.n_obs, self.n_fe = X.shape

    def pls(self):
        state, re = self.state, self.state.random_effects
        A, factor = state.system.A, state.factor
        q, p = A.shape[0], self.n_fe
        factor.refactorize(A, 1.0)
        cu = np.asarray(factor.solve_L(A.dot(self.wy))).reshape(q)
        RZX = np.asarray(factor.solve_L(A.dot(self.wX))).reshape(q, p)
        RXtRX = self.XtX - RZX.T.dot(RZX)
        try:
            RX = sp.linalg.cholesky(RXtRX, lower=False, check_finite=False)
        except np.linalg.LinAlgError as e:
            raise FactorizationError("downdated X'X is not positive definite") from e
        if np.any(np.diag(RX) <= 1e-6 * np.sqrt(np.abs(np.diag(RXtRX)))):
            raise FactorizationError("fixed-effects design is rank deficient")
        beta = sp.linalg.cho_solve((RX, False), self.Xty - RZX.T.dot(cu))
        u = np.asarray(factor.solve_Lt(cu - RZX.dot(beta))).reshape(q)
        mu = self.X.dot(beta) + state.system.Zt.T.dot(re.lambda_dot(u))
        r = self.y - mu
        if self.sqrtwts is not None:
            r = r / self.sqrtwts
        state.u[:] = u
        state.beta[:] = beta
        state.mu[:] = mu
        state.RX = RX
        re.set_u(u)
        state.wrss = np.dot(r, r)
        state.pwrss = state.wrss + np.dot(u, u)
        state.ldL2 = factor.logdet()
        state.ldRX2 = chol_logdet(RX)

    def criterion(self, reml=False):
        state = self.state
        if reml:
            nu = self.n_obs - self.n_fe
            return state.ldL2 + state.ldRX2 + profiled_resid_term(state.pwrss, nu)
        return state.ldL2 + profiled_resid_term(state.pwrss, self.n_obs)

    def evaluate(self, theta, reml=False):
        self.state.random_effects.set_theta(theta)
        self.pls()
        self.state.objective = self.criterion(reml)
        self.state.n_evals += 1
        return self.state.objective


class OptimizationDriver(object):
    """
    Minimizes a model's objective over theta with a derivative-free, bound
    constrained minimizer and moves the model through UNFIT -> FITTING -> FIT.
    """
    def __init__(self, model):
        self.model = model
        self.optsum = None

    def objective_function(self, pbar=None):
        """
        Objective with the f(x, grad) signature of the minimizers.  Only
        derivative-free use is supported.
        """
        model = self.model
        n_evals0 = model.state.n_evals

        def objective(x, grad):
            if len(grad) > 0:
                raise UnsupportedOperationError("gradient evaluations are not provided")
            val = model.objective(x)
            if pbar is not None:
                pbar.set_postfix_str(f"f_{model.state.n_evals - n_evals0}: {val}, {x}")
                pbar.update(1)
            return val
        return objective

    def fit(self, optimizer=None, opt_kws=None, verbose=False):
        model = self.model
        if model.status is FitStatus.FIT:
            return model
        kws = dict(options=opt_kws) if optimizer is None else dict(method=optimizer, options=opt_kws)
        kws = process_optimizer_kwargs(kws)
        method, options = kws['method'], kws['options']
        theta0 = model.thvec().copy()
        minimizer = get_minimizer(method, len(theta0))
        minimizer.set_lower_bounds(model.lower())
        minimizer.set_ftol_abs(options['ftol_abs'])
        minimizer.set_xtol_abs(options['xtol_abs'])
        minimizer.set_maxeval(options['maxeval'])
        pbar = tqdm.tqdm(total=options['maxeval'] or None, smoothing=0.001) if verbose else None
        n_evals0 = model.state.n_evals
        minimizer.set_min_objective(self.objective_function(pbar))
        model.status = FitStatus.FITTING
        try:
            fmin, xmin, status = minimizer.optimize(theta0)
            if not np.array_equal(xmin, model.thvec()):
                fmin = model.objective(xmin)
            self.optsum = dict(method=method, options=options, theta0=theta0,
                               fmin=fmin, xmin=xmin.copy(), status=status,
                               n_evals=model.state.n_evals - n_evals0)
            model.optsum = self.optsum
            model.status = FitStatus.FIT
        finally:
            if model.status is FitStatus.FITTING:
                model.status = FitStatus.UNFIT
            if pbar is not None:
                pbar.close()
        return model


class LMM(LinearMixedModel):
    """
    Linear mixed model estimated by ML or REML through a sparse Cholesky
    factor of Lambda'Z'Z Lambda + I.

    Parameters
    ----------
    X : array-like
        Fixed-effects design matrix, has shape (n, p).
    y : array-like
        Response, has length n.
    terms : list of RandomEffectTerm
        Random-effects terms.  They are reordered by non-increasing number
        of levels.
    sqrtwts : array-like, optional
        Positive per-observation residual scale factors; residuals are
        divided by them.
    REML : bool, optional
        Optimize the REML criterion instead of the deviance.
    fe_names : list of str, optional
        Labels of the columns of X.
    """
    def __init__(self, X, y, terms, sqrtwts=None, REML=False, fe_names=None):
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        y = _check_shape(np.asarray(y, dtype=float), 1)
        n, p = X.shape
        if y.ndim != 1 or len(y) != n:
            raise ValidationError(f"response has shape {y.shape}, expected ({n},)")
        if n <= p:
            raise ValidationError(f"{n} observations cannot estimate {p} fixed effects")
        if sqrtwts is not None:
            sqrtwts = _check_shape(np.asarray(sqrtwts, dtype=float), 1)
            if len(sqrtwts) != n:
                raise ValidationError(f"sqrtwts has length {len(sqrtwts)}, expected {n}")
            if not np.all(np.isfinite(sqrtwts)) or np.any(sqrtwts <= 0):
                raise ValidationError("sqrtwts must be positive and finite")
        self.random_effects = RandomEffects(terms, sqrtwts)
        self.terms = self.random_effects.terms
        self._X, self._y, self._sqrtwts = X, y, sqrtwts
        self.n_obs, self.n_fe = n, p
        self.fe_names = [f"x{i}" for i in range(p)] if fe_names is None else list(fe_names)
        self.REML = bool(REML)
        self.status = FitStatus.UNFIT
        self.optsum = None
        self.state = PLSState(self.random_effects, n, p)
        self.evaluator = ObjectiveEvaluator(self.state, X, y, sqrtwts)
        self.driver = OptimizationDriver(self)
        self.objective(self.thvec())

    def obs(self):
        return self._y

    def exptd(self):
        return self.state.mu

    def sqrtwts(self):
        return np.empty(0) if self._sqrtwts is None else self._sqrtwts

    def L(self):
        return [self.state.factor.L()]

    def Zt(self):
        return self.random_effects.system.Zt

    def size(self):
        return self.n_obs, self.n_fe, self.random_effects.q, self.random_effects.n_terms

    def X(self):
        return self._X

    def RX(self):
        return self.state.RX

    def is_fit(self):
        return self.status is FitStatus.FIT

    def is_reml(self):
        return self.REML

    def lower(self):
        return self.random_effects.lower

    def thvec(self):
        return self.state.theta

    def uvec(self):
        return self.state.u

    def betavec(self):
        return self.state.beta

    def set_fit(self):
        self.status = FitStatus.FIT
        return self

    def unset_fit(self):
        self.status = FitStatus.UNFIT
        return self

    def _set_reml_flag(self, reml):
        self.REML = bool(reml)

    def objective(self, theta):
        return self.evaluator.evaluate(theta, reml=self.REML)

    def fit(self, REML=None, optimizer=None, opt_kws=None, verbose=False):
        if REML is not None and bool(REML) != self.REML:
            if REML:
                self.set_reml()
            else:
                self.unset_reml()
        return self.driver.fit(optimizer=optimizer, opt_kws=opt_kws, verbose=verbose)

    def grplevels(self):
        return self.random_effects.grplevels()

    def lambdas(self):
        return self.random_effects.lambdas

    def varcorr(self):
        self.fit()
        s2 = self.sigma2()
        return [s2 * G.dot(G.T) for G in self.lambdas()] + [s2]

    def ranef(self):
        """Conditional modes on the original scale, one (p_i, l_i) array per term."""
        self.fit()
        return [term.ranef() for term in self.terms]

    def names(self):
        groups = [term.name if term.name is not None else f"g{i}"
                  for i, term in enumerate(self.terms)]
        re = [term.re_names if term.re_names is not None else
              [f"z{j}" for j in range(term.p)] for term in self.terms]
        return dict(fe=self.fe_names, groups=groups, re=re)

    def predict(self):
        return self.exptd().copy()

    def residuals(self):
        return self.obs() - self.exptd()


class ScalarLMM(LMM):
    """
    Linear mixed model in which every random-effects term has a single
    column, so each theta entry is the relative standard deviation of
    one term.
    """
    def __init__(self, X, y, terms, sqrtwts=None, REML=False, fe_names=None):
        if any(term.p != 1 for term in terms):
            raise ValidationError("ScalarLMM requires single-column random-effects terms")
        super().__init__(X, y, terms, sqrtwts, REML, fe_names)

    def varcorr(self):
        return self.scalar_varcorr()

    def grplevels(self):
        system = self.random_effects.system
        return [len(np.unique(system.block_rows(i))) for i in range(len(self.terms))]


def make_lmm(X, y, terms, sqrtwts=None, REML=False, fe_names=None):
    """ScalarLMM when every term has one column, LMM otherwise."""
    if len(terms) > 0 and all(term.p == 1 for term in terms):
        return ScalarLMM(X, y, terms, sqrtwts, REML, fe_names)
    return LMM(X, y, terms, sqrtwts, REML, fe_names)


def lmer(formula, data, REML=False, sqrtwts=None):
    """
    Build a mixed model from a formula such as "y ~ 1 + x + (1 + x | g)".

    Parameters
    ----------
    formula : str
        Model formula; each parenthesised "(re | group)" is a random-effects
        term whose design matrix is built from `re` with patsy.
    data : DataFrame
        Data holding the response, covariates and grouping factors.
    REML : bool, optional
        Fit by REML instead of maximum likelihood.
    sqrtwts : array-like, optional
        Per-observation residual scale factors.

    Returns
    -------
    model : LMM or ScalarLMM
        Unfit model.
    """
    model_info = parse_random_effects(formula)
    if len(model_info["re_terms"]) == 0:
        raise UnsupportedOperationError(f"Formula {formula} has no random-effects terms")
    X = patsy.dmatrix(model_info["fe_form"], data=data, NA_action="raise",
                      return_type='dataframe')
    y = _check_np(data[model_info["y_vars"][0]])
    terms = []
    for re_form, gr_form in model_info["re_terms"]:
        Xi = patsy.dmatrix(re_form, data=data, NA_action="raise",
                           return_type='dataframe')
        refs, levels = factor_codes(data[gr_form])
        terms.append(RandomEffectTerm(Xi.values, refs, len(levels), name=gr_form,
                                      re_names=list(Xi.columns)))
    model = make_lmm(X.values, y, terms, sqrtwts, REML, fe_names=list(X.columns))
    model.formula = formula
    model.model_info = model_info
    return model
