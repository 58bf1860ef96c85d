'''
Distributed GP regression in 1D with noisy evaluations.

500 noisy observations of sin(x) on [0, 10] are split into 5 experts.
The covariance parameters shared by all experts are selected by
maximizing the sum of the local log marginal likelihoods, and the
posterior of the latent function is predicted with projected-process
experts combined by a Bayesian Committee Machine.

----
Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
'''
import numpy as np
import matplotlib.pyplot as plt
import gpbcm.num as gnp
import gpbcm as gp


def generate_data(noise_std, ni=500, nt=200, seed=0):
    """Noisy observations of sin(x) on [0, 10], and a test grid."""
    rng = np.random.default_rng(seed)
    xi = rng.uniform(0.0, 10.0, size=(ni, 1))
    zi = np.sin(xi[:, 0]) + noise_std * rng.standard_normal(ni)
    xt = np.linspace(0.0, 10.0, nt).reshape(-1, 1)
    zt = np.sin(xt[:, 0])
    return xt, zt, xi, zi


def main():
    """Fit the committee and predict the latent posterior on a grid."""
    noise_std = 1e-1
    xt, zt, xi, zi = generate_data(noise_std)

    kernel = gp.kernel.SquaredExponentialKernel()
    model = gp.Model(kernel, n_experts=5, active_set_size=200, seed=0)
    model.fit(xi, zi, verbosity=1)
    print(model)

    zpm, zpv = model.predict(xt)
    rmse = float(gnp.sqrt(gnp.mean((zpm - zt) ** 2)))
    print(f"RMSE on the test grid: {rmse:.4f}")
    return xt, zt, xi, zi, zpm, zpv


def visualize(xt, zt, xi, zi, zpm, zpv):
    """Plot reference function, observations, and committee posterior."""
    ci = 1.96 * np.sqrt(zpv)
    fig, ax = plt.subplots()
    ax.plot(xt[:, 0], zt, 'C0', linestyle=(0, (5, 5)), linewidth=1, label='truth')
    ax.plot(xi[:, 0], zi, 'k.', markersize=2, label='observations')
    ax.plot(xt[:, 0], zpm, 'C1', label='posterior mean')
    ax.fill_between(xt[:, 0], zpm - ci, zpm + ci, color='C1', alpha=0.3)
    ax.set_xlabel('x')
    ax.set_ylabel('z')
    ax.set_title('Distributed GP regression (BCM of projected processes)')
    ax.grid(True)
    ax.legend()
    plt.show()


if __name__ == "__main__":
    xt, zt, xi, zi, zpm, zpv = main()
    visualize(xt, zt, xi, zi, zpm, zpv)
