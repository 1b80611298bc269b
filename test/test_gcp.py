import lcv.gcp as gcp
import lcv.jackknife as jk
import unittest
import warnings
import numpy as np
from scipy.stats import t as tdist
from numpy.testing import assert_array_equal, assert_allclose, assert_raises
from simulate import simulate_ld, simulate_z


def _delete_values(rho_center=0.5, n_blocks=50, seed=0):
    rng = np.random.RandomState(seed)
    rho = rho_center + 0.01 * rng.normal(size=n_blocks)
    return np.vstack([
        rho,
        3 * rho + 2 + 0.1 * rng.normal(size=n_blocks),
        3 * rho + 1 + 0.1 * rng.normal(size=n_blocks),
        np.full(n_blocks, 0.05),
        1 + 0.001 * rng.normal(size=n_blocks),
        1 + 0.001 * rng.normal(size=n_blocks),
        np.ones(n_blocks),
        np.ones(n_blocks)]).T


def _aggregate(s_err=0.1, rho_err=0.1, s_jk=None):
    if s_jk is None:
        s_jk = np.ones((10, 2))
    return jk.Aggregate(rho=0.5, rho_err=rho_err, s=np.array([1.0, 1.0]),
                        s_err=np.array([s_err, s_err]), intercept=np.ones(3),
                        rho_jk=np.full(10, 0.5), asym_jk1=np.zeros(10), asym_jk2=np.zeros(10),
                        s_jk=s_jk)


def _assert_in_range(lcvhat):
    for p in [lcvhat.pval_gcpzero_2tailed] + list(lcvhat.pval_fullycausal):
        assert 0 <= p <= 1, p
    assert -1 <= lcvhat.gcp_pm <= 1, lcvhat.gcp_pm


class Test_Grid(unittest.TestCase):

    def test_grid(self):
        self.assertEqual(len(gcp.GCP_GRID), 201)
        self.assertEqual(np.sum(gcp.GCP_GRID == 0), 1)
        self.assertEqual(gcp.GCP_GRID[gcp.LOWER_BOUND_POINT], -1)
        self.assertEqual(gcp.GCP_GRID[gcp.ZERO_POINT], 0)
        self.assertEqual(gcp.GCP_GRID[gcp.UPPER_BOUND_POINT], 1)
        assert_allclose(np.diff(gcp.GCP_GRID), 0.01)


class Test_Validation(unittest.TestCase):

    def setUp(self):
        self.ell = simulate_ld(100)
        self.z1, self.z2 = simulate_z(self.ell)

    def test_missing_args(self):
        assert_raises(gcp.ArgumentError, gcp.run_lcv, self.ell, self.z1)
        assert_raises(gcp.ArgumentError, gcp.run_lcv, self.ell)
        assert_raises(gcp.ArgumentError, gcp.run_lcv)
        # still a TypeError for callers that catch the builtin
        assert_raises(TypeError, gcp.run_lcv, self.ell, self.z1)
        assert_raises(gcp.ArgumentError, gcp.run_lcv, self.ell, self.z1, None)
        assert_raises(gcp.ArgumentError, gcp.run_lcv, None, self.z1, self.z2)

    def test_bad_shapes(self):
        assert_raises(gcp.ShapeError, gcp.run_lcv, self.ell, self.z1, self.z2[:-1])
        assert_raises(gcp.ShapeError, gcp.run_lcv, self.ell.reshape((50, 2)),
                      self.z1, self.z2)
        assert_raises(gcp.ShapeError, gcp.run_lcv, self.ell, self.z1, self.z2,
                      weights=np.ones(99))
        # ShapeError is a ValueError
        assert_raises(ValueError, gcp.run_lcv, self.ell, self.z1[:-1], self.z2)

    def test_column_vectors(self):
        ell, z1, z2, w = gcp.check_vectors(self.ell.reshape((100, 1)), self.z1, self.z2)
        assert_array_equal(ell.shape, (100,))
        assert_array_equal(ell, self.ell)

    def test_default_weights(self):
        _, _, _, w = gcp.check_vectors([0.5, 2.0, 4.0], [1, 2, 3], [1, 2, 3])
        assert_allclose(w, [1, 0.5, 0.25])
        assert_raises(ValueError, gcp.check_vectors, [1, 2], [1, 2], [1, 2], [1, 0])

    def test_default_config(self):
        c = gcp.default_config(1000)
        self.assertEqual(c, gcp.LCVConfig(crosstrait_intercept=1, ldsc_intercept=1,
                                          sig_threshold=np.inf, no_blocks=100, n1=None,
                                          n2=None, cross_int=None))
        c = gcp.default_config(1000, ldsc_intercept=0)
        self.assertEqual((c.n1, c.n2), (1.0, 1.0))
        c = gcp.default_config(1000, crosstrait_intercept=2, cross_int=0.1)
        self.assertEqual(c.cross_int, 0.1)

    def test_bad_config(self):
        assert_raises(ValueError, gcp.default_config, 1000, crosstrait_intercept=3)
        assert_raises(ValueError, gcp.default_config, 1000, ldsc_intercept=2)
        assert_raises(ValueError, gcp.default_config, 1000, no_blocks=2)
        assert_raises(ValueError, gcp.default_config, 1000, no_blocks=1001)
        assert_raises(gcp.ArgumentError, gcp.default_config, 1000, crosstrait_intercept=2)
        assert_raises(ValueError, gcp.run_lcv, self.ell, self.z1, self.z2, no_blocks=2)


class Test_GridStatistics(unittest.TestCase):

    def test_t_stat(self):
        t = gcp._t_stat([1.0, 0.0, -2.0, 3.0], [2.0, 0.0, 0.0, np.nan])
        self.assertEqual(t[0], 0.5)
        self.assertEqual(t[1], 0)
        self.assertEqual(t[2], -np.inf)
        self.assertTrue(np.isnan(t[3]))

    def test_one_grid_point(self):
        rho_jk = np.array([0.5, -0.4, 0.6, 0.55])
        a1 = np.array([1.0, 2.0, 1.5, 0.5])
        a2 = np.array([0.3, 0.2, 0.1, 0.4])
        x = 0.5
        S = []
        for r, k1, k2 in zip(rho_jk, a1, a2):
            f = abs(r) ** -x
            S.append((k1 / f - f * k2) / max(1 / abs(r), np.sqrt((k1 / f) ** 2 + (f * k2) ** 2)))
        S = np.array(S)
        expected = np.mean(S) / (np.std(S, ddof=1) * np.sqrt(5))
        t = gcp.gcp_statistics(rho_jk, a1, a2, grid=np.array([x]))
        assert_allclose(t, [expected])

    def test_rho_one(self):
        # |rho| = 1 makes the statistic the same at every grid point
        rng = np.random.RandomState(1)
        t = gcp.gcp_statistics(np.ones(20), rng.normal(size=20), rng.normal(size=20))
        assert_allclose(t, t[0])

    def test_floor_on_denominator(self):
        # tiny moments: the denominator is 1 / |rho|, so S = rho * numer
        rho_jk = np.full(5, 0.5)
        a1 = np.array([1e-6, 2e-6, 3e-6, 4e-6, 5e-6])
        a2 = np.zeros(5)
        t = gcp.gcp_statistics(rho_jk, a1, a2, grid=np.array([0.0]))
        S = 0.5 * a1
        assert_allclose(t, [np.mean(S) / (np.std(S, ddof=1) * np.sqrt(6))])


class Test_Posterior(unittest.TestCase):

    def test_flat(self):
        est, err = gcp.posterior(np.ones(201))
        self.assertAlmostEqual(est, 0)
        self.assertAlmostEqual(err, np.sqrt(np.mean(gcp.GCP_GRID ** 2)))

    def test_point_mass(self):
        likelihood = np.zeros(201)
        likelihood[150] = 0.3
        est, err = gcp.posterior(likelihood)
        self.assertAlmostEqual(est, 0.5)
        self.assertAlmostEqual(err, 0)

    def test_two_points(self):
        likelihood = np.zeros(201)
        likelihood[[0, 200]] = 1
        est, err = gcp.posterior(likelihood)
        self.assertAlmostEqual(est, 0)
        self.assertAlmostEqual(err, 1)


class Test_Diagnostics(unittest.TestCase):

    def test_clean(self):
        self.assertEqual(gcp.diagnostics(_aggregate()), [])

    def test_borderline_h2(self):
        msgs = gcp.diagnostics(_aggregate(s_err=0.2))
        self.assertEqual(len(msgs), 1)
        self.assertTrue(msgs[0].startswith('Borderline noisy heritability'))

    def test_noisy_h2(self):
        msgs = gcp.diagnostics(_aggregate(s_err=0.5))
        self.assertEqual(len(msgs), 1)
        self.assertTrue(msgs[0].startswith('Very noisy heritability'))

    def test_negative_h2(self):
        s_jk = np.ones((10, 2))
        s_jk[3, 1] = -0.1
        msgs = gcp.diagnostics(_aggregate(s_err=0.5, s_jk=s_jk))
        self.assertEqual(len(msgs), 1)
        self.assertTrue(msgs[0].startswith('Negative heritability'))

    def test_rg_independent_of_h2(self):
        msgs = gcp.diagnostics(_aggregate(s_err=0.5, rho_err=1.0))
        self.assertEqual(len(msgs), 2)
        self.assertTrue(msgs[1].startswith('No significantly nonzero genetic correlation'))
        msgs = gcp.diagnostics(_aggregate(rho_err=1.0))
        self.assertEqual(len(msgs), 1)


class Test_FromDeleteValues(unittest.TestCase):

    def test_hypothesis_tests(self):
        d = _delete_values()
        lcvhat = gcp.lcv_from_delete_values(d)
        agg = jk.aggregate(d)
        t = gcp.gcp_statistics(agg.rho_jk, agg.asym_jk1, agg.asym_jk2)
        df = len(d) - 2
        self.assertAlmostEqual(lcvhat.zscore, t[gcp.ZERO_POINT])
        self.assertAlmostEqual(lcvhat.pval_gcpzero_2tailed,
                               2 * tdist.cdf(-abs(t[gcp.ZERO_POINT]), df))
        assert_allclose(lcvhat.pval_fullycausal,
                        [tdist.cdf(t[gcp.UPPER_BOUND_POINT], df),
                         tdist.cdf(-t[gcp.LOWER_BOUND_POINT], df)])
        assert_allclose(lcvhat.likelihood, tdist.pdf(t, df))
        self.assertEqual(lcvhat.warnings, ())

    def test_negative_rho_flips_sign(self):
        d = _delete_values()
        d[:, 0] *= -1
        # keep k41 - 3 rho unchanged
        d[:, 1:3] -= 6 * _delete_values()[:, [0]]
        lcvhat = gcp.lcv_from_delete_values(d)
        lcvhat_pos = gcp.lcv_from_delete_values(_delete_values())
        self.assertAlmostEqual(lcvhat.zscore, -lcvhat_pos.zscore)
        self.assertAlmostEqual(lcvhat.rho_est, -lcvhat_pos.rho_est)

    def test_ranges(self):
        for seed in range(5):
            lcvhat = gcp.lcv_from_delete_values(_delete_values(seed=seed))
            self.assertTrue(-1 <= lcvhat.gcp_pm <= 1)
            self.assertTrue(0 <= lcvhat.pval_gcpzero_2tailed <= 1)
            self.assertTrue(np.all((lcvhat.pval_fullycausal >= 0) &
                                   (lcvhat.pval_fullycausal <= 1)))
            self.assertTrue(np.all(lcvhat.likelihood >= 0))

    def test_warns(self):
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter('always')
            lcvhat = gcp.lcv_from_delete_values(_delete_values(rho_center=0.05))

        msgs = [str(x.message) for x in w if issubclass(x.category, gcp.LCVWarning)]
        self.assertEqual(tuple(msgs), lcvhat.warnings)
        self.assertEqual(len(msgs), 1)
        self.assertTrue('No significantly nonzero genetic correlation' in msgs[0])
        self.assertTrue('WARNING: No significantly' in lcvhat.summary())

    def test_result_is_immutable(self):
        lcvhat = gcp.lcv_from_delete_values(_delete_values())
        assert_raises(AttributeError, setattr, lcvhat, 'gcp_pm', 0)
        self.assertEqual(lcvhat.likelihood.shape, (201,))
        self.assertEqual(lcvhat.intercept.shape, (3,))
        self.assertTrue('Posterior mean gcp' in lcvhat.summary())


class Test_RunLCV(unittest.TestCase):

    def test_identical_traits(self):
        ell = simulate_ld(10000, seed=0)
        z1, _ = simulate_z(ell, seed=1)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            lcvhat = gcp.run_lcv(ell, z1, z1.copy(), no_blocks=10)
        self.assertTrue(abs(lcvhat.rho_est) > 0.9)
        self.assertTrue(abs(lcvhat.gcp_pm) < 0.3)
        _assert_in_range(lcvhat)

    def test_independent_traits(self):
        ell = simulate_ld(10000, seed=2)
        z1, z2 = simulate_z(ell, shared=0.0, seed=3)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            lcvhat = gcp.run_lcv(ell, z1, z2)
        self.assertTrue(abs(lcvhat.rho_est) < 3 * lcvhat.rho_err)
        self.assertTrue(np.all(lcvhat.s > 0))
        self.assertTrue(any('No significantly nonzero genetic correlation' in m
                            for m in lcvhat.warnings))
        _assert_in_range(lcvhat)

    def test_deterministic(self):
        ell = simulate_ld(3000, seed=4)
        z1, z2 = simulate_z(ell, shared=0.3, seed=5)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            a = gcp.run_lcv(ell, z1, z2, no_blocks=20)
            b = gcp.run_lcv(ell, z1, z2, no_blocks=20)
        assert_array_equal(a.likelihood, b.likelihood)
        self.assertEqual(a.gcp_pm, b.gcp_pm)
        self.assertEqual(a.rho_est, b.rho_est)
        assert_array_equal(a.pval_fullycausal, b.pval_fullycausal)

    def test_swap_traits(self):
        ell = simulate_ld(5000, seed=6)
        z1, z2 = simulate_z(ell, shared=0.5, seed=7)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            a = gcp.run_lcv(ell, z1, z2, no_blocks=20)
            b = gcp.run_lcv(ell, z2, z1, no_blocks=20)
        assert_allclose(a.rho_est, b.rho_est, rtol=1e-8)
        assert_allclose(a.pval_fullycausal, b.pval_fullycausal[::-1], rtol=1e-6, atol=1e-12)
        assert_allclose(a.zscore, -b.zscore, rtol=1e-6, atol=1e-10)
        assert_allclose(a.gcp_pm, -b.gcp_pm, rtol=1e-6, atol=1e-10)
        _assert_in_range(a)
        _assert_in_range(b)

    def test_one_snp_per_block(self):
        ell = simulate_ld(60, seed=8)
        z1, z2 = simulate_z(ell, shared=0.5, seed=9)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            lcvhat = gcp.run_lcv(ell, z1, z2, no_blocks=60)
        self.assertEqual(lcvhat.likelihood.shape, (201,))
        _assert_in_range(lcvhat)

    def test_injected_estimator(self):
        calls = []

        def estimator(ell, z1, z2, crosstrait_intercept, ldsc_intercept, weights,
                      sig_threshold, n1=None, n2=None, cross_int=None):
            calls.append((len(ell), crosstrait_intercept, ldsc_intercept, n1, n2, cross_int))
            r = 0.5 + 0.01 * z1[0]
            return (r, 3 * r + 1 + 0.1 * z2[0], 3 * r + 0.5, 0.0, 1 + 0.01 * z1[0], 1.0,
                    1.0, 1.0)

        ell = np.arange(1, 11, dtype=float)
        z = np.arange(10, dtype=float)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            lcvhat = gcp.run_lcv(ell, z, z[::-1], crosstrait_intercept=2, ldsc_intercept=0,
                                 no_blocks=4, cross_int=0.3, estimator=estimator)
        self.assertEqual(calls, [(8, 2, 0, 1.0, 1.0, 0.3)] * 4)
        self.assertTrue(-1 <= lcvhat.gcp_pm <= 1)
