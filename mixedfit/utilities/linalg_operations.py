#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat May 16 21:47:11 2020

@author: lukepinkel
"""

import numba 
import numpy as np 


@numba.jit(nopython=True)
def vech(X):
    p = X.shape[0]
    tmp =  1 - np.tri(p, p, k=-1)
    tmp2 = tmp.flatten()
    ix = tmp2==1
    Y = X.T.flatten()[ix]
    return Y


def invech_chol(lvec):
    '''
    Inverse half vectorization into a lower triangular matrix, filled
    column by column
    '''
    p = lvec_size_to_mat_size(len(lvec))
    L = np.zeros((p, p))
    a, b = np.triu_indices(p)
    L[(b, a)] = lvec
    return L


def lvec_size_to_mat_size(lvec_size):
    return int(0.5 * ((8 * lvec_size + 1)**0.5 - 1))


def mat_size_to_lvec_size(mat_size):
    return int(mat_size * (mat_size + 1) // 2)


def lvec_diag_indices(mat_size):
    """
    Positions of the diagonal entries of a `mat_size` square matrix within
    its column-wise half vectorization.
    """
    a, b = np.triu_indices(mat_size)
    ix, = np.where(a==b)
    return ix


def chol_logdet(R):
    return 2.0 * np.sum(np.log(np.diag(R)))
