#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Tue Jul 12 05:54:38 2022

@author: lukepinkel
"""

import re

RANEF_PATTERN = r"\([^)]+[|][^)]+\)"


def find_ranef_terms(formula):
    return re.findall(RANEF_PATTERN, formula)


def replace_duplicate_operators(match):
    return match.group()[-1:]


def parse_random_effects(formula):
    """
    Split a mixed model formula of the form "y ~ fe + (re | g)".

    Parameters
    ----------
    formula : str
        Model formula with one or more parenthesised random-effects terms.

    Returns
    -------
    model_info : dict
        y_vars, fe_form, re_terms (list of (re_form, grouping) pairs),
        re_forms and re_groupings.  re_terms is empty when the formula
        has no random-effects term.
    """
    matches = find_ranef_terms(formula)
    re_terms = [tuple(s.strip() for s in re.search(r"\(([^)]+)\|([^)]+)\)", x).groups())
                for x in matches]
    frm = formula
    for x in matches:
        frm = frm.replace(x, "")
    fe_form = re.sub(r"(\+|\-)(\s*(\+|\-))+", replace_duplicate_operators, frm)
    yvars, fe_form = re.split("[~]", fe_form)
    fe_form = re.sub(r"\s*\+\s*$", "", fe_form).strip()
    fe_form = "1" if fe_form == "" else fe_form
    y_vars = re.split(",", re.sub(r"\(|\)", "", yvars))
    y_vars = [x.strip() for x in y_vars]
    if len(re_terms) > 0:
        re_forms, re_groupings = [list(x) for x in zip(*re_terms)]
    else:
        re_forms, re_groupings = [], []
    model_info = dict(y_vars=y_vars, fe_form=fe_form, re_terms=re_terms,
                      re_forms=re_forms, re_groupings=re_groupings)
    return model_info
