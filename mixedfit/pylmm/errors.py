#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Thu Oct 15 19:02:11 2026

@author: lukepinkel
"""
import numpy as np


class MixedModelError(Exception):
    pass


class ValidationError(MixedModelError, ValueError):
    """Malformed theta or model inputs."""
    pass


class FactorizationError(MixedModelError, np.linalg.LinAlgError):
    """The penalized system matrix is not positive definite."""
    pass


class UnsupportedOperationError(MixedModelError, NotImplementedError):
    pass


class ConvergenceError(MixedModelError, RuntimeError):
    """The minimizer reported failure."""
    pass
