#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Fri Oct 16 10:41:27 2026

@author: lukepinkel
"""
from sksparse.cholmod import analyze_AAt, CholmodNotPositiveDefiniteError
from .errors import FactorizationError


class SparseCholeskyFactor(object):
    """
    Cholesky factor of A A' + ridge I for a matrix A whose sparsity pattern
    never changes.

    The fill-reducing permutation and elimination tree are computed once by
    `analyze`; `refactorize` only recomputes the numeric entries in the
    storage CHOLMOD allocated during the analysis.  The factor is
    supernodal LL', so CHOLMOD reports a non-positive pivot.

    Parameters
    ----------
    A : csc_matrix, optional
        Matrix whose pattern is analyzed right away.
    """
    def __init__(self, A=None):
        self.factor = None
        self.is_factorized = False
        self.n_factorizations = 0
        if A is not None:
            self.analyze(A)
        
    def analyze(self, A):
        self.factor = analyze_AAt(A, mode="supernodal")
        self.is_factorized = False
        return self
    
    def refactorize(self, A, ridge=1.0):
        if self.factor is None:
            self.analyze(A)
        self.is_factorized = False
        try:
            self.factor.cholesky_AAt_inplace(A, beta=ridge)
        except CholmodNotPositiveDefiniteError as e:
            raise FactorizationError(f"A A' + {ridge} I is not positive definite") from e
        self.is_factorized = True
        self.n_factorizations += 1
        return self
    
    def _check_factorized(self):
        if not self.is_factorized:
            raise FactorizationError("factor has no numeric values, call refactorize first")
    
    def solve_L(self, b):
        """L^{-1} P b"""
        self._check_factorized()
        Pb = self.factor.apply_P(b)
        return self.factor.solve_L(Pb, use_LDLt_decomposition=False)
    
    def solve_Lt(self, b):
        """P' L'^{-1} b"""
        self._check_factorized()
        x = self.factor.solve_Lt(b, use_LDLt_decomposition=False)
        return self.factor.apply_Pt(x)
    
    def logdet(self):
        """log|A A' + ridge I|, twice the log determinant of L."""
        self._check_factorized()
        return self.factor.logdet()
    
    def L(self):
        self._check_factorized()
        return self.factor.L()
