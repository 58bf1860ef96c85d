'''
Distributed GP regression on a sharded 2D dataset.

The training set is given as a list of shards, as when data is read
from several files. Experts of at most 100 points are cut out of every
shard, the Matérn 3/2 kernel is fitted by maximum likelihood, and the
BCM and robust BCM predictors are compared on held-out data.

----
Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
'''
import numpy as np
import gpbcm.num as gnp
import gpbcm as gp
from gpbcm.dataloader import Dataset


def branin_like(x):
    return np.sin(3.0 * x[:, 0]) * np.cos(2.0 * x[:, 1]) + 0.5 * x[:, 0]


def generate_data(noise_std, n_shards=4, shard_size=150, seed=1):
    rng = np.random.default_rng(seed)
    xs, zs = [], []
    for _ in range(n_shards):
        x = rng.uniform(-1.0, 1.0, size=(shard_size, 2))
        xs.append(x)
        zs.append(branin_like(x) + noise_std * rng.standard_normal(shard_size))
    return Dataset(xs, zs)


def main():
    noise_std = 5e-2
    dataset = generate_data(noise_std)
    train, test = Dataset.split(dataset, ratios=(0.8, 0.2), seed=0)
    xt, zt = test.concatenated()

    kernel = gp.kernel.Matern32Kernel()
    results = {}
    for aggregation in ("bcm", "rbcm"):
        model = gp.Model(
            kernel,
            expert_size=100,
            active_set_size=150,
            active_set="maximin",
            aggregation=aggregation,
        )
        model.fit(dataset=train, maxiter=200)
        zpm, zpv = model.predict(xt)
        rmse = float(gnp.sqrt(gnp.mean((zpm - zt) ** 2)))
        print(f"{aggregation}: {len(model.experts)} experts, RMSE {rmse:.4f}")
        results[aggregation] = (zpm, zpv)
    return xt, zt, results


if __name__ == "__main__":
    main()
