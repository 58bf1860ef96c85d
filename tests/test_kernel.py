"""
Unit tests for the stationary kernels.
"""
import math
import unittest
import pytest
import gpbcm.num as gnp
from gpbcm.kernel import (
    SquaredExponentialKernel,
    Matern32Kernel,
    matern32_kernel,
    squared_exponential_kernel,
    anisotropic_parameters_initial_guess,
)
from gpbcm.dataloader import Dataset
from gpbcm.errors import DimensionMismatchError

KERNELS = [SquaredExponentialKernel(), Matern32Kernel()]


def make_points(n=8, d=2, seed=0):
    rng = gnp.default_rng(seed)
    return rng.uniform(-1.0, 1.0, size=(n, d))


class TestProfiles(unittest.TestCase):

    def test_unit_value_at_zero(self):
        h = gnp.zeros((3,))
        self.assertTrue(gnp.allclose(squared_exponential_kernel(h), 1.0))
        self.assertTrue(gnp.allclose(matern32_kernel(h), 1.0))

    def test_known_values(self):
        h = gnp.array([0.5, 2.0])
        c = 2.0 * math.sqrt(1.5)
        expected = (1.0 + c * h) * gnp.exp(-c * h)
        self.assertTrue(gnp.allclose(matern32_kernel(h), expected))
        self.assertTrue(
            gnp.allclose(squared_exponential_kernel(h), gnp.exp(-0.5 * h**2))
        )

    def test_profiles_decrease(self):
        h = gnp.linspace(0.0, 5.0, 50)
        for kernel in KERNELS:
            self.assertTrue(gnp.all(gnp.diff(kernel.profile(h)) < 0.0))


class TestCovariance(unittest.TestCase):

    def setUp(self):
        self.x = make_points()
        self.covparam = gnp.array([math.log(2.0), 0.3, -0.2, math.log(0.1)])

    def test_noisy_covariance(self):
        for kernel in KERNELS:
            K = kernel.covariance(self.x, None, self.covparam)
            self.assertTrue(gnp.allclose(K, K.T))
            nugget = 10.0 * 2.0 * gnp.eps
            self.assertTrue(gnp.allclose(gnp.diag(K), 2.0 + 0.1 + nugget))

    def test_cross_covariance_is_noise_free(self):
        for kernel in KERNELS:
            K = kernel.covariance(self.x, self.x.copy(), self.covparam)
            self.assertTrue(gnp.allclose(K, kernel.latent_covariance(self.x, self.covparam)))
            self.assertTrue(gnp.allclose(gnp.diag(K), 2.0))

    def test_pairwise(self):
        kernel = SquaredExponentialKernel()
        v = kernel.covariance(self.x, None, self.covparam, pairwise=True)
        self.assertEqual(v.shape, (self.x.shape[0],))
        self.assertTrue(gnp.allclose(v, 2.0))
        y = make_points(seed=1)
        v = kernel.covariance(self.x, y, self.covparam, pairwise=True)
        K = kernel.covariance(self.x, y, self.covparam)
        self.assertTrue(gnp.allclose(v, gnp.diag(K)))

    def test_gradient_matches_finite_differences(self):
        for kernel in KERNELS:
            _, dK = kernel.covariance_and_gradient(self.x, self.covparam)
            self.assertEqual(dK.shape, (4, 8, 8))
            for i in range(4):

                def K_i(t):
                    p = self.covparam.copy()
                    p[i] = t
                    return kernel.covariance(self.x, None, p)

                dK_fd = gnp.derivative_finite_diff(K_i, self.covparam[i], 1e-5)
                self.assertTrue(gnp.allclose(dK[i], dK_fd, rtol=1e-5, atol=1e-8))


class TestParameters(unittest.TestCase):

    def test_param_length(self):
        kernel = Matern32Kernel()
        self.assertEqual(kernel.param_length(3), 5)
        covparam = kernel.default_covparam(3)
        self.assertEqual(covparam.shape, (5,))
        self.assertAlmostEqual(float(kernel.noise_variance(covparam)), 1e-2)

    def test_check_covparam(self):
        kernel = SquaredExponentialKernel()
        with self.assertRaises(DimensionMismatchError):
            kernel.check_covparam(gnp.zeros((3,)), 2)
        with self.assertRaises(DimensionMismatchError):
            kernel.check_covparam(gnp.zeros((2, 2)), 2)

    def test_split(self):
        kernel = SquaredExponentialKernel()
        covparam = gnp.array([math.log(3.0), math.log(1 / 0.5), math.log(0.2)])
        sigma2, loginvrho, noise2 = kernel.split_covparam(covparam)
        self.assertAlmostEqual(float(sigma2), 3.0)
        self.assertAlmostEqual(float(noise2), 0.2)
        self.assertTrue(gnp.allclose(kernel.length_scales(covparam), 0.5))

    def test_equality(self):
        self.assertEqual(SquaredExponentialKernel(), SquaredExponentialKernel())
        self.assertNotEqual(SquaredExponentialKernel(), Matern32Kernel())


@pytest.mark.parametrize("kernel", KERNELS)
def test_initial_guess_from_arrays_and_dataset(kernel):
    x = make_points(n=40, d=3, seed=2)
    z = gnp.sin(x[:, 0]) + x[:, 1]
    p_arrays = anisotropic_parameters_initial_guess(kernel, x, z)
    p_dataset = anisotropic_parameters_initial_guess(
        kernel, dataset=Dataset([x[:25], x[25:]], [z[:25], z[25:]])
    )
    assert p_arrays.shape == (5,)
    assert gnp.allclose(p_arrays, p_dataset)
    assert gnp.isclose(p_arrays[0], gnp.log(gnp.var(z)))
    assert gnp.isclose(p_arrays[-1], gnp.log(1e-2 * gnp.var(z)))


def test_initial_guess_needs_one_data_source():
    kernel = SquaredExponentialKernel()
    with pytest.raises(ValueError):
        anisotropic_parameters_initial_guess(kernel)


def test_initial_guess_with_constant_labels():
    kernel = SquaredExponentialKernel()
    x = make_points(n=10, d=1)
    p = anisotropic_parameters_initial_guess(kernel, x, gnp.ones((10,)))
    assert gnp.all(gnp.isfinite(p))


if __name__ == "__main__":
    unittest.main()
