#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat May 23 03:54:38 2020

@author: lukepinkel
"""
import numpy as np
import pandas as pd


def get_fixef_table(params, index=None, parameter_label=None):
    """
    Fixed-effects point estimates as a one column DataFrame.

    Parameters
    ----------
    params : array-like
        A 1D array of parameter estimates.
    index : array-like, optional
        The index for the resulting DataFrame.
    parameter_label : str, optional
        The label for the parameter column. Default is 'estimate'.
    """
    parameter_label = 'estimate' if parameter_label is None else parameter_label
    return pd.DataFrame(np.asarray(params).reshape(-1), index=index,
                        columns=[parameter_label])


def get_varcorr_table(varcorr, group_names, re_names):
    """
    Variance components in long format.

    Parameters
    ----------
    varcorr : list
        One covariance matrix (or scalar variance) per random-effects term
        followed by the residual variance.
    group_names : list of str
        Grouping factor label of each term.
    re_names : list of list of str
        Random variable labels of each term.

    Returns
    -------
    df : pandas.DataFrame
        Columns Groups, Name, Variance, Std.Dev. and Corr, where Corr holds
        the correlations with the preceding variables of the same term.
    """
    rows = []
    for G, group, names in zip(varcorr[:-1], group_names, re_names):
        G = np.atleast_2d(G)
        sd = np.sqrt(np.diag(G))
        with np.errstate(divide='ignore', invalid='ignore'):
            R = G / np.outer(sd, sd)
        for i, name in enumerate(names):
            corr = " ".join(f"{r:.3f}" for r in R[i, :i])
            rows.append((group, name, G[i, i], sd[i], corr))
    s2 = float(np.asarray(varcorr[-1]).reshape(-1)[0])
    rows.append(("Residual", "", s2, np.sqrt(s2), ""))
    df = pd.DataFrame(rows, columns=["Groups", "Name", "Variance", "Std.Dev.", "Corr"])
    return df
