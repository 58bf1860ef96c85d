"""
Tests for BCM aggregation, active sets and the projected-process predictor.
"""
import math
import pickle
import unittest
import pytest
import gpbcm.num as gnp
from gpbcm.kernel import SquaredExponentialKernel, Matern32Kernel
from gpbcm.core import (
    Committee,
    ProjectedProcessPredictor,
    bcm_combine,
    build_predictor,
    partition,
    rbcm_combine,
)
from gpbcm.core.active_set import (
    active_set_sizes,
    kmeans_active_set,
    maximin_active_set,
    predictor_groups,
    random_active_set,
    select_active_set,
)
from gpbcm.core.predictor import (
    local_predictions,
    projected_process_expert,
    projected_process_group,
)
from gpbcm.dataloader import Dataset
from gpbcm.errors import DimensionMismatchError


def make_data(n=200, d=2, seed=0):
    rng = gnp.default_rng(seed)
    xi = rng.uniform(-1.0, 1.0, size=(n, d))
    zi = gnp.sin(3.0 * xi[:, 0]) * gnp.cos(xi[:, 1]) + 0.05 * rng.standard_normal(n)
    return xi, zi


def make_predictor(n_experts=4, active_set_size=160, aggregation="bcm", n_jobs=1, policy="random"):
    xi, zi = make_data()
    kernel = SquaredExponentialKernel()
    covparam = gnp.array([0.0, math.log(2.0), math.log(2.0), math.log(0.05**2)])
    experts = partition(Dataset(xi, zi), kernel, n_experts=n_experts)
    with Committee(experts, n_jobs=n_jobs) as committee:
        return build_predictor(
            committee,
            covparam,
            active_set_size=active_set_size,
            active_set=policy,
            aggregation=aggregation,
            seed=7,
        )


class TestAggregation(unittest.TestCase):

    def setUp(self):
        rng = gnp.default_rng(0)
        self.prior = gnp.full((6,), 2.0)
        self.mean = rng.standard_normal(6)
        self.var = rng.uniform(0.1, 1.5, size=6)

    def test_single_expert_is_identity(self):
        mean, var = bcm_combine(self.mean[None, :], self.var[None, :], self.prior)
        self.assertTrue(gnp.allclose(mean, self.mean))
        self.assertTrue(gnp.allclose(var, self.var))

    def test_identical_experts(self):
        for M in (2, 3, 10):
            means = gnp.stack([self.mean] * M)
            variances = gnp.stack([self.var] * M)
            mean, var = bcm_combine(means, variances, self.prior)
            self.assertTrue(gnp.allclose(mean, self.mean))
            expected = 1.0 / (M / self.var - (M - 1) / self.prior)
            self.assertTrue(gnp.allclose(var, expected))
            self.assertTrue(gnp.all(var <= self.var))

    def test_uninformative_experts_give_the_prior(self):
        means = gnp.zeros((3, 6))
        variances = gnp.stack([self.prior] * 3)
        for combine in (bcm_combine, rbcm_combine):
            mean, var = combine(means, variances, self.prior)
            self.assertTrue(gnp.allclose(mean, 0.0))
            self.assertTrue(gnp.allclose(var, self.prior))

    def test_rbcm_weights(self):
        means = gnp.stack([self.mean, 2.0 * self.mean])
        variances = gnp.stack([self.var, 0.5 * self.var])
        mean, var = rbcm_combine(means, variances, self.prior)
        beta = 0.5 * (gnp.log(self.prior) - gnp.log(variances))
        tau = gnp.sum(beta / variances, axis=0) + (1.0 - gnp.sum(beta, axis=0)) / self.prior
        self.assertTrue(gnp.allclose(var, 1.0 / tau))
        self.assertTrue(gnp.allclose(mean, gnp.sum(beta * means / variances, axis=0) / tau))


class TestActiveSet(unittest.TestCase):

    def setUp(self):
        self.xi, _ = make_data(n=60)
        self.covparam = gnp.array([0.0, 0.5, -0.5, -4.0])

    def test_sizes(self):
        self.assertEqual(active_set_sizes([100, 100, 50], 60), [20, 20, 20])
        self.assertEqual(active_set_sizes([100, 100, 50], 1000), [100, 100, 50])
        self.assertEqual(active_set_sizes([10, 10, 10], 3), [1, 1, 1])
        with self.assertRaises(ValueError):
            active_set_sizes([10], 0)
        with self.assertRaises(ValueError):
            active_set_sizes([100] * 200, 10)

    def test_groups_keep_the_budget(self):
        for n_experts in (1, 7, 40, 200):
            for budget in (1, 10, 100, 1000):
                groups = predictor_groups(n_experts, budget)
                self.assertEqual(sum(groups, []), list(range(n_experts)))
                self.assertTrue(all(len(g) > 0 for g in groups))
                self.assertLessEqual(len(groups), max(1, math.isqrt(budget)))
                sizes = active_set_sizes([100 * len(g) for g in groups], budget)
                self.assertLessEqual(sum(sizes), budget)
                self.assertLessEqual(sum(m * m for m in sizes), budget**2)
        self.assertEqual(predictor_groups(5, 100), [[0], [1], [2], [3], [4]])
        self.assertEqual(predictor_groups(5, 4), [[0, 1, 2], [3, 4]])

    def test_subset_policies(self):
        for policy in (random_active_set, maximin_active_set):
            xm = policy(self.xi, 15, self.covparam[1:-1], 3)
            self.assertEqual(xm.shape, (15, 2))
            rows = {tuple(r) for r in self.xi.tolist()}
            self.assertTrue(all(tuple(r) in rows for r in xm.tolist()))
            self.assertEqual(len({tuple(r) for r in xm.tolist()}), 15)

    def test_kmeans(self):
        xm = kmeans_active_set(self.xi, 10, self.covparam[1:-1], 3)
        self.assertEqual(xm.shape, (10, 2))
        self.assertTrue(gnp.all(xm >= gnp.min(self.xi, axis=0) - 1e-12))
        self.assertTrue(gnp.all(xm <= gnp.max(self.xi, axis=0) + 1e-12))

    def test_deterministic_for_a_seed(self):
        for policy in ("random", "maximin", "kmeans"):
            a = select_active_set(policy, self.xi, 12, self.covparam, seed=5)
            b = select_active_set(policy, self.xi, 12, self.covparam, seed=5)
            self.assertTrue(gnp.all(a == b))

    def test_whole_expert(self):
        xm = select_active_set("random", self.xi, 60, self.covparam, seed=0)
        self.assertTrue(gnp.all(xm == self.xi))

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            select_active_set("greedy", self.xi, 5, self.covparam, seed=0)

    def test_callable_policy(self):
        xm = select_active_set(lambda x, m, l, s: x[:m], self.xi, 4, self.covparam, seed=0)
        self.assertTrue(gnp.all(xm == self.xi[:4]))

    def test_maximin_with_repeated_points(self):
        xi = gnp.array([[0.0], [1.0], [2.0]] * 10)
        xm = maximin_active_set(xi, 5, gnp.zeros((1,)), 0)
        self.assertEqual(sorted(xm[:, 0].tolist()), [0.0, 1.0, 2.0])


def test_group_accumulates_its_blocks():
    xi, zi = make_data(n=90, seed=5)
    kernel = SquaredExponentialKernel()
    covparam = gnp.array([0.0, math.log(2.0), math.log(2.0), math.log(0.05**2)])
    active = xi[::9]
    whole = projected_process_expert(kernel, covparam, xi, zi, active, jitter=1e-8)
    blocks = [(xi[:20], zi[:20]), (xi[20:55], zi[20:55]), (xi[55:], zi[55:])]
    grouped = projected_process_group(kernel, covparam, blocks, active, jitter=1e-8)
    for a, b in zip(whole, grouped):
        assert gnp.allclose(a, b, rtol=1e-8, atol=1e-10)


def test_many_experts_share_the_budget():
    predictor = make_predictor(n_experts=50, active_set_size=16)
    assert predictor.n_experts == 4
    assert predictor.active_set_sizes == [4, 4, 4, 4]
    xt, _ = make_data(n=10, seed=6)
    mean, var = predictor.predict(xt)
    assert gnp.all(gnp.isfinite(mean))
    assert gnp.all(var > 0.0)


@pytest.mark.parametrize("kernel", [SquaredExponentialKernel(), Matern32Kernel()])
def test_full_active_set_is_the_local_gp(kernel):
    # well separated points keep K_mm well conditioned
    xi = gnp.arange(10.0).reshape(-1, 1)
    zi = gnp.sin(xi[:, 0])
    covparam = gnp.array([math.log(1.5), math.log(1 / 0.5), math.log(0.01)])
    xt = gnp.linspace(-1.0, 10.0, 23).reshape(-1, 1)

    pp = projected_process_expert(kernel, covparam, xi, zi, xi.copy(), jitter=1e-10)
    prior = kernel.covariance(xt, None, covparam, pairwise=True)
    mean, var = local_predictions(kernel, covparam, pp, xt, prior)

    K = kernel.latent_covariance(xi, covparam) + 0.01 * gnp.eye(10)
    Kt = kernel.covariance(xi, xt, covparam)
    W = gnp.numpy.linalg.solve(K, Kt)
    assert gnp.allclose(mean, gnp.matmul(W.T, zi), rtol=1e-6, atol=1e-8)
    assert gnp.allclose(var, prior - gnp.sum(Kt * W, axis=0), rtol=1e-6, atol=1e-8)


def test_single_expert_predictor_matches_local_prediction():
    predictor = make_predictor(n_experts=1, active_set_size=50)
    xt, _ = make_data(n=30, seed=3)
    means, variances, _ = predictor.predict_experts(xt)
    mean, var = predictor.predict(xt)
    assert gnp.allclose(mean, means[0])
    assert gnp.allclose(var, variances[0])


class TestPredictor(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.predictor = make_predictor()
        cls.xt, _ = make_data(n=40, seed=11)

    def test_properties(self):
        p = self.predictor
        self.assertEqual(p.n_experts, 4)
        self.assertEqual(p.active_set_sizes, [40, 40, 40, 40])
        self.assertEqual(p.aggregation, "bcm")
        self.assertEqual(p.dim, 2)
        self.assertEqual(p.covparam.shape, (4,))
        self.assertIn("experts=4", repr(p))

    def test_predict(self):
        mean, var = self.predictor.predict(self.xt)
        self.assertEqual(mean.shape, (40,))
        self.assertEqual(var.shape, (40,))
        self.assertTrue(gnp.all(var > 0.0))
        self.assertTrue(gnp.all(var <= 1.0 + 1e-12))
        truth = gnp.sin(3.0 * self.xt[:, 0]) * gnp.cos(self.xt[:, 1])
        self.assertLess(float(gnp.sqrt(gnp.mean((mean - truth) ** 2))), 0.15)

    def test_mean_only(self):
        mean, var = self.predictor.predict(self.xt, return_variance=False)
        self.assertIsNone(var)
        self.assertTrue(gnp.allclose(mean, self.predictor.predict(self.xt)[0]))

    def test_call_on_a_feature_vector(self):
        x = self.xt[3]
        self.assertIsInstance(self.predictor(x), float)
        self.assertAlmostEqual(self.predictor(x), float(self.predictor.predict(x)[0][0]))

    def test_dimension_mismatch(self):
        with self.assertRaises(DimensionMismatchError):
            self.predictor.predict(gnp.zeros((3, 3)))
        with self.assertRaises(DimensionMismatchError):
            self.predictor.predict(gnp.zeros((3,)))

    def test_immutable(self):
        p = self.predictor
        with self.assertRaises(AttributeError):
            p.covparam = gnp.zeros((4,))
        with self.assertRaises(AttributeError):
            del p.experts
        self.assertFalse(p.covparam.flags.writeable)
        for e in p.experts:
            for a in e:
                self.assertFalse(a.flags.writeable)
        with self.assertRaises(ValueError):
            p.experts[0].mean_weights[0] = 0.0

    def test_pickle_round_trip(self):
        restored = pickle.loads(pickle.dumps(self.predictor))
        m1, v1 = self.predictor.predict(self.xt)
        m2, v2 = restored.predict(self.xt)
        self.assertTrue(gnp.all(m1 == m2))
        self.assertTrue(gnp.all(v1 == v2))
        self.assertFalse(restored.experts[0].chol.flags.writeable)
        self.assertEqual(restored.kernel, self.predictor.kernel)


def test_threads_build_the_same_predictor():
    xt, _ = make_data(n=10, seed=2)
    m1, v1 = make_predictor(n_jobs=1).predict(xt)
    m2, v2 = make_predictor(n_jobs=4).predict(xt)
    assert gnp.allclose(m1, m2)
    assert gnp.allclose(v1, v2)


@pytest.mark.parametrize("policy", ["random", "maximin", "kmeans"])
@pytest.mark.parametrize("aggregation", ["bcm", "rbcm"])
def test_policies_and_aggregations(policy, aggregation):
    predictor = make_predictor(policy=policy, aggregation=aggregation)
    xt, _ = make_data(n=25, seed=4)
    mean, var = predictor.predict(xt)
    assert gnp.all(gnp.isfinite(mean))
    assert gnp.all(var > 0.0)


def test_invalid_aggregation():
    with pytest.raises(ValueError):
        make_predictor(aggregation="poe")
    with pytest.raises(ValueError):
        ProjectedProcessPredictor(SquaredExponentialKernel(), gnp.zeros((3,)), [], "bcm")


if __name__ == "__main__":
    unittest.main()
