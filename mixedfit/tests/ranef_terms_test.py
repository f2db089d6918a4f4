# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:05:48 2026

@author: lukepinkel
"""

import pytest
import numpy as np
from mixedfit.pylmm.ranef_terms import RandomEffectTerm, RandomEffects
from mixedfit.pylmm.errors import ValidationError, UnsupportedOperationError
from mixedfit.utilities.linalg_operations import invech_chol


def make_terms(rng, n=30):
    x = rng.normal(size=n)
    t1 = RandomEffectTerm(np.ones(n), rng.integers(0, 3, size=n), 3, name="a")
    t2 = RandomEffectTerm(np.column_stack([np.ones(n), x]), np.arange(n) % 5, 5, name="b")
    return [t1, t2]


def dense_lambdat_zt(re):
    blocks = []
    for term in re.terms:
        n = len(term.inds)
        B = np.zeros((term.q, n))
        for j in range(n):
            rows = term.p * term.inds[j] + np.arange(term.p)
            B[rows, j] = term.lambda_.T.dot(term.Xs[j])
        blocks.append(B)
    return np.vstack(blocks)


def test_term_attributes():
    term = RandomEffectTerm(np.ones((4, 3)), np.array([0, 1, 1, 0]))
    assert(term.n_levels==2)
    assert(term.n_param==6)
    assert(np.array_equal(term.diag_inds, [0, 3, 5]))
    assert(np.allclose(term.lambda_, np.eye(3)))
    assert(term.u.shape==(3, 2))
    assert(np.array_equal(term.row_indices(10)[1], [13, 14, 15]))
    with pytest.raises(ValidationError):
        RandomEffectTerm(np.ones(4), np.array([0, 1, 1]))
    with pytest.raises(ValidationError):
        RandomEffectTerm(np.ones(4), np.array([0, 1, 2, 3]), n_levels=3)
    with pytest.raises(ValidationError):
        RandomEffectTerm(np.ones(4), np.array([0.0, 1.0, 1.0, 0.0]))


def test_terms_ordered_by_levels():
    rng = np.random.default_rng(1)
    re = RandomEffects(make_terms(rng))
    assert([term.name for term in re.terms]==["b", "a"])
    assert(re.group_sizes==[5, 3])
    assert(re.n_par==4)
    assert(re.q==2*5+3)
    assert(np.array_equal(re.diag_inds, [0, 2, 3]))
    assert(np.allclose(re.lower, [0.0, -np.inf, 0.0, 0.0]))
    with pytest.raises(UnsupportedOperationError):
        RandomEffects([])


def test_set_theta_fills_lambda_and_system_matrix():
    rng = np.random.default_rng(2)
    re = RandomEffects(make_terms(rng))
    A = re.system.A
    data = A.data
    pattern = A.indices.copy()
    theta = np.array([1.5, -0.7, 0.4, 2.0])
    re.set_theta(theta)
    assert(np.allclose(re.terms[0].lambda_, [[1.5, 0.0], [-0.7, 0.4]]))
    assert(np.allclose(re.terms[1].lambda_, [[2.0]]))
    assert(np.allclose(re.get_theta(), theta))
    assert(np.allclose(A.toarray(), dense_lambdat_zt(re)))
    assert(re.system.A.data is data)
    assert(np.shares_memory(re.system.nzmat, A.data))
    assert(np.array_equal(A.indices, pattern))
    Zt = re.system.Zt
    Lam = np.zeros((re.q, re.q))
    Lam[:10, :10] = np.kron(np.eye(5), re.terms[0].lambda_)
    Lam[10:, 10:] = np.kron(np.eye(3), re.terms[1].lambda_)
    assert(np.allclose(A.toarray(), Lam.T.dot(Zt.toarray())))


def test_set_theta_is_atomic():
    rng = np.random.default_rng(3)
    re = RandomEffects(make_terms(rng))
    theta = np.array([0.5, 0.1, 0.9, 1.1])
    re.set_theta(theta)
    values = re.system.A.data.copy()
    for bad in [np.array([2.0, 0.3, 1.0, -1.0]), np.array([-2.0, 0.3, 1.0, 1.0]),
                np.array([1.0, np.nan, 1.0, 1.0]), np.ones(5)]:
        with pytest.raises(ValidationError):
            re.set_theta(bad)
        assert(np.allclose(re.theta, theta))
        assert(np.allclose(re.terms[0].lambda_, invech_chol(theta[:3])))
        assert(np.array_equal(re.system.A.data, values))
    re.set_theta(np.array([0.5, -3.0, 0.9, 1.1]))


def test_conditional_modes_layout():
    rng = np.random.default_rng(4)
    re = RandomEffects(make_terms(rng))
    u = np.arange(re.q, dtype=float)
    re.set_u(u)
    assert(np.allclose(re.terms[0].u[:, 1], [2.0, 3.0]))
    assert(np.allclose(re.terms[1].u, [[10.0, 11.0, 12.0]]))
    assert(np.allclose(np.concatenate([t.u.T.reshape(-1) for t in re.terms]), u))
    re.set_theta(np.array([2.0, 1.0, 3.0, 0.5]))
    b = re.lambda_dot(u)
    assert(np.allclose(b[2:4], np.array([[2.0, 0.0], [1.0, 3.0]]).dot([2.0, 3.0])))
    assert(np.allclose(b[10:], 0.5 * u[10:]))
    assert(np.allclose(re.terms[0].ranef()[:, 1], b[2:4]))


def test_models_own_their_terms():
    rng = np.random.default_rng(5)
    terms = make_terms(rng)
    re1, re2 = RandomEffects(terms), RandomEffects(terms)
    re1.set_theta(np.array([2.0, 0.5, 3.0, 0.7]))
    re1.set_u(np.ones(re1.q))
    assert(np.allclose(re2.theta, [1.0, 0.0, 1.0, 1.0]))
    assert(np.allclose(re2.terms[0].lambda_, np.eye(2)))
    assert(np.allclose(re2.terms[1].u, 0.0))
    assert(np.allclose(re2.system.A.toarray(), dense_lambdat_zt(re2)))
    assert(np.allclose(terms[1].lambda_, np.eye(2)))
    assert(re1.terms[0].Xs is terms[1].Xs)
    re3 = RandomEffects(re1.terms)
    assert(np.allclose(re3.get_theta(), [1.0, 0.0, 1.0, 1.0]))
