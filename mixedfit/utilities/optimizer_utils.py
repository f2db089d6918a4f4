#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Tue May 19 21:42:34 2020

@author: lukepinkel
"""
from .func_utils import handle_default_kws

BOBYQA_options = dict(ftol_abs=1e-6, xtol_abs=1e-6, maxeval=0)
Powell_options = dict(ftol_abs=1e-6, xtol_abs=1e-6, maxeval=0)
NelderMead_options = dict(ftol_abs=1e-6, xtol_abs=1e-6, maxeval=0)
default_opts = {'LN_BOBYQA':BOBYQA_options,
                'bobyqa':BOBYQA_options,
                'Powell':Powell_options,
                'powell':Powell_options,
                'Nelder-Mead':NelderMead_options,
                'nelder-mead':NelderMead_options}

default_method = 'LN_BOBYQA'


def process_optimizer_kwargs(optimizer_kwargs=None, default_method=default_method):
    """
    Fill in the optimizer name and its default options.

    Parameters
    ----------
    optimizer_kwargs : dict or None
        May hold 'method' and an 'options' dict; options override the
        method's defaults.

    Returns
    -------
    dict
        Dictionary with 'method' and a complete 'options' dict.
    """
    optimizer_kwargs = {} if optimizer_kwargs is None else dict(optimizer_kwargs)
    keys = optimizer_kwargs.keys()

    if 'method' not in keys:
        optimizer_kwargs['method'] = default_method
    method = optimizer_kwargs['method']
    if method not in default_opts:
        raise ValueError(f"Unknown optimizer '{method}'. "
                         f"Valid methods: {sorted(default_opts.keys())}")
    optimizer_kwargs['options'] = handle_default_kws(optimizer_kwargs.get('options'),
                                                     default_opts[method])
    return optimizer_kwargs
