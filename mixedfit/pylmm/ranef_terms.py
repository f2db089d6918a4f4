#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Wed Jul 20 19:13:13 2022

@author: lukepinkel
"""
import copy
import numpy as np
import scipy.sparse as sps
from .errors import ValidationError, UnsupportedOperationError
from ..utilities.linalg_operations import (invech_chol, vech, lvec_diag_indices,
                                           mat_size_to_lvec_size)


class RandomEffectTerm(object):
    """
    Term for a random effect in a mixed model.

    Parameters
    ----------
    Xs : array-like
        Design matrix for the random effect, has shape (n, p).  A 1d array is
        treated as a single column.
    inds : array-like of int
        Level of the grouping factor for each observation, in [0, n_levels).
    n_levels : int, optional
        Number of levels of the grouping factor, defaults to max(inds)+1.
    name : str, optional
        Label of the grouping factor.
    re_names : list of str, optional
        Labels of the columns of Xs.

    Attributes
    ----------
    lambda_ : ndarray
        Lower triangular relative covariance factor, has shape (p, p).
    u : ndarray
        Conditional modes on the spherical scale, has shape (p, n_levels).
    n_rvars : int
        Number of random variables (p).
    n_param : int
        Number of parameters, p*(p+1)/2.
    diag_inds : ndarray
        Positions of the diagonal of lambda_ within the term's parameters.
    """
    def __init__(self, Xs, inds, n_levels=None, name=None, re_names=None):
        Xs = np.asarray(Xs, dtype=float)
        if Xs.ndim == 1:
            Xs = Xs.reshape(-1, 1)
        inds = np.asarray(inds).reshape(-1)
        if not np.issubdtype(inds.dtype, np.integer):
            raise ValidationError("level assignments must be integers")
        n, p = Xs.shape
        if len(inds) != n:
            raise ValidationError(f"term has {n} design rows but {len(inds)} level assignments")
        if n > 0 and inds.min() < 0:
            raise ValidationError("level assignments must be non-negative")
        n_levels = int(inds.max()) + 1 if n_levels is None else int(n_levels)
        if n > 0 and inds.max() >= n_levels:
            raise ValidationError(f"level assignment {inds.max()} out of range for {n_levels} levels")
        self.Xs = Xs
        self.inds = inds.astype(np.int64)
        self.name = name
        self.re_names = re_names
        self.n_levels = self.l = n_levels
        self.n_rvars = self.p = p
        self.n_param = mat_size_to_lvec_size(p)
        self.q = p * n_levels
        self.diag_inds = lvec_diag_indices(p)
        self.lambda_ = np.eye(p)
        self.u = np.zeros((p, n_levels))

    def copy(self):
        """Copy sharing the design and levels, with lambda_ = I and u = 0."""
        term = copy.copy(self)
        term.lambda_ = np.eye(self.p)
        term.u = np.zeros((self.p, self.l))
        return term

    def row_indices(self, offset):
        """Rows of the system matrix touched by each observation, shape (n, p)."""
        return offset + self.p * self.inds[:, np.newaxis] + np.arange(self.p)
    
    def set_lambda(self, theta_i):
        self.lambda_[...] = invech_chol(theta_i)

    def get_theta(self):
        return vech(self.lambda_)

    def set_u(self, u_i):
        self.u[...] = u_i.reshape(self.l, self.p).T

    def ranef(self):
        return self.lambda_.dot(self.u)


class SparseSystemMatrix(object):
    """
    Lambda'Z' stored as a q x n csc_matrix with a fixed pattern.

    Column j holds sum(p_i) nonzeros, one block of p_i rows per term.  The
    values are only ever overwritten through `nzmat`, a (n, sum(p_i)) view of
    the matrix's data array, so the allocation made here is reused for the
    lifetime of the model.
    """
    def __init__(self, terms, sqrtwts=None):
        n = terms[0].Xs.shape[0]
        rows, col_offsets, row_offsets = [], [], []
        row_offset, col_offset = 0, 0
        for term in terms:
            rows.append(term.row_indices(row_offset))
            row_offsets.append(row_offset)
            col_offsets.append(col_offset)
            row_offset += term.q
            col_offset += term.p
        m, q = col_offset, row_offset
        indices = np.hstack(rows).reshape(-1)
        indptr = np.arange(0, n * m + 1, m)
        zdata = np.hstack([term.Xs for term in terms]).reshape(-1)
        self.Zt = sps.csc_matrix((zdata, indices, indptr), shape=(q, n))
        self.A = sps.csc_matrix((np.zeros(n * m), indices.copy(), indptr.copy()),
                                shape=(q, n))
        self.nzmat = self.A.data.reshape(n, m)
        if sqrtwts is None:
            self.wXs = [term.Xs for term in terms]
        else:
            self.wXs = [term.Xs / sqrtwts[:, np.newaxis] for term in terms]
        self.n_obs, self.n_cols, self.q = n, m, q
        self.col_offsets, self.row_offsets = col_offsets, row_offsets

    def update_block(self, i, lambda_i):
        c0 = self.col_offsets[i]
        p = lambda_i.shape[0]
        self.nzmat[:, c0:c0+p] = self.wXs[i].dot(lambda_i)

    def block_rows(self, i):
        return self.A.indices.reshape(self.n_obs, self.n_cols)[:, self.col_offsets[i]]


class RandomEffects(object):
    """
    Random effects for a mixed model and the map from theta to the
    per-term covariance factors.

    Parameters
    ----------
    terms : list of RandomEffectTerm
        Terms for the random effects in the model.  Each is copied, so the
        model owns its covariance factors and modes, and the copies are
        ordered by non-increasing number of levels.
    sqrtwts : ndarray, optional
        Per-observation residual scale factors; rows of the system matrix
        are divided by them.

    Attributes
    ----------
    terms : list of RandomEffectTerm
        Terms in system-matrix order.
    system : SparseSystemMatrix
        Lambda'Z' with fixed pattern.
    theta : ndarray
        Current parameters, has length n_par.
    lower : ndarray
        Lower bounds, zero for diagonal positions and -inf otherwise.
    t_inds : list of ndarray
        Indices of each term's parameters within theta.
    u_inds : list of ndarray
        Indices of each term's conditional modes within the stacked u.
    diag_inds : ndarray
        Positions of diagonal entries within theta.
    """
    def __init__(self, terms, sqrtwts=None):
        if len(terms) == 0:
            raise UnsupportedOperationError("model has no random-effects terms")
        n = terms[0].Xs.shape[0]
        if any(term.Xs.shape[0] != n for term in terms):
            raise ValidationError("random-effects terms have differing numbers of rows")
        order = np.argsort([-term.n_levels for term in terms], kind='stable')
        terms = [terms[i].copy() for i in order]
        t_offset, u_offset = 0, 0
        t_inds, u_inds, diag_inds, lower = [], [], [], []
        for term in terms:
            t_inds.append(np.arange(t_offset, t_offset+term.n_param))
            u_inds.append(np.arange(u_offset, u_offset+term.q))
            diag_inds.append(term.diag_inds + t_offset)
            lower_i = np.full(term.n_param, -np.inf)
            lower_i[term.diag_inds] = 0.0
            lower.append(lower_i)
            t_offset += term.n_param
            u_offset += term.q
        self.terms = terms
        self.t_inds, self.u_inds = t_inds, u_inds
        self.diag_inds = np.concatenate(diag_inds)
        self.lower = np.concatenate(lower)
        self.n_par = t_offset
        self.n_terms = self.levels = len(terms)
        self.q = u_offset
        self.group_sizes = [term.n_levels for term in terms]
        self.n_rvars = [term.n_rvars for term in terms]
        self.system = SparseSystemMatrix(terms, sqrtwts)
        self.theta = np.concatenate([term.get_theta() for term in terms])
        for i, term in enumerate(terms):
            self.system.update_block(i, term.lambda_)

    def check_theta(self, theta):
        theta = np.asarray(theta, dtype=float)
        if theta.ndim != 1 or len(theta) != self.n_par:
            raise ValidationError(f"theta has shape {theta.shape}, expected ({self.n_par},)")
        if not np.all(np.isfinite(theta)):
            raise ValidationError("theta contains non-finite values")
        neg_diag = self.diag_inds[theta[self.diag_inds] < 0]
        if len(neg_diag) > 0:
            raise ValidationError(f"negative diagonal element in theta at positions {neg_diag}")
        below = np.where(theta < self.lower)[0]
        if len(below) > 0:
            raise ValidationError(f"theta = {theta} violates lower bounds {self.lower}")
        return theta

    def set_theta(self, theta):
        """
        Install theta: validate it as a whole, then fill each lambda_i
        column by column and overwrite the term's block of Lambda'Z'.
        Nothing is modified when validation fails.
        """
        theta = self.check_theta(theta)
        for i, term in enumerate(self.terms):
            term.set_lambda(theta[self.t_inds[i]])
            self.system.update_block(i, term.lambda_)
        self.theta[:] = theta
        return self

    def get_theta(self):
        return np.concatenate([term.get_theta() for term in self.terms])

    @property
    def lambdas(self):
        return [term.lambda_ for term in self.terms]

    def set_u(self, u):
        for i, term in enumerate(self.terms):
            term.set_u(u[self.u_inds[i]])

    def lambda_dot(self, u):
        """Lambda u for the stacked spherical modes u."""
        b = np.zeros_like(u)
        for i, term in enumerate(self.terms):
            ui = u[self.u_inds[i]].reshape(term.l, term.p).T
            b[self.u_inds[i]] = term.lambda_.dot(ui).T.reshape(-1)
        return b

    def grplevels(self):
        return list(self.group_sizes)
