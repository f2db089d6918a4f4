#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Wed Aug 12 13:34:49 2020

@author: lukepinkel
"""
import numpy as np

LN2PI = np.log(2.0 * np.pi)


def handle_default_kws(kws, default_kws):
    """
    Return a dictionary that includes default keyword arguments as well as custom keyword arguments.
    
    Parameters
    ----------
    kws : dict or None
        The dictionary of custom keyword arguments
    default_kws : dict
        The dictionary of default keyword arguments
        
    Returns
    -------
    dict
        A dictionary that includes both the default and custom keyword arguments
    """
    kws = {} if kws is None else kws
    kws = {**default_kws, **kws}
    return kws


def profiled_resid_term(pwrss, nu):
    """
    Residual part of the profiled criterion, nu * (1 + log(2 pi pwrss / nu)),
    where nu is n for ML and n - p for REML.
    """
    return nu * (1.0 + LN2PI + np.log(pwrss / nu))
