#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Tue May 19 21:28:03 2020

@author: lukepinkel
"""
import numpy as np
import pandas as pd


def _check_shape(x, ndims=1):
    order = 'C' if x.flags['C_CONTIGUOUS'] else 'F'
    if x.ndim>ndims:
        x = x.reshape(x.shape[:-1], order=order)
    elif x.ndim<ndims:
        x = np.expand_dims(x, axis=-1)
    return x


def _check_np(x):
    if type(x) is not np.ndarray:
        x = x.values
    return x


def factor_codes(x, categories=None):
    """
    Code a grouping variable as integer levels.

    Parameters
    ----------
    x : array-like or Series
        Grouping variable with one entry per observation.
    categories : array-like, optional
        Level set and order.  Defaults to the sorted unique values of `x`.

    Returns
    -------
    refs : ndarray of int
        Level index in [0, n_levels) for each observation.
    categories : ndarray
        Level labels.
    """
    x = np.asarray(x.values if isinstance(x, (pd.Series, pd.Index)) else x)
    if categories is None:
        categories, refs = np.unique(x, return_inverse=True)
    else:
        categories = np.asarray(categories)
        lookup = {c:i for i, c in enumerate(categories)}
        refs = np.array([lookup[v] for v in x])
    return refs.astype(np.int64).reshape(-1), categories
