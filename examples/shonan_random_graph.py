"""
Average the rotations of a noisy random graph and plot the staircase.
"""
import logging

import matplotlib.pyplot as plt
import numpy as np

from pyshonan import ShonanAveraging, ShonanAveragingParameters
from pyshonan import synthetic
from pyshonan.lie import SO3

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")

rng = np.random.default_rng(1)
truth, measurements = synthetic.random_graph(30, 0.2, sigma=0.1, rng=rng)

params = ShonanAveragingParameters(seed=1)
shonan = ShonanAveraging(measurements, params)
result = shonan.run(p_min=3, p_max=10, with_descent=True)

# align the estimate with the ground truth through the first pose
k0 = shonan.pose_keys[0]
G = truth[k0] @ result.values[k0].T
errors = np.rad2deg(
    [float(SO3.angle(truth[k].T @ G @ result.values[k])) for k in truth]
)
print("certified:", result.certified, "at p =", result.p)
print("min eigenvalue: {:.3e}".format(result.min_eigenvalue))
print("cost: {:.6f} (ground truth {:.6f})".format(shonan.cost(result.values), shonan.cost(truth)))
print("rotation error [deg]: mean {:.3f} max {:.3f}".format(np.mean(errors), np.max(errors)))

ps = [level.p for level in result.levels]
fig, (ax0, ax1) = plt.subplots(2, 1, sharex=True)
ax0.semilogy(ps, [level.rounded_cost for level in result.levels], "o-", label="rounded")
ax0.semilogy(ps, [level.cost for level in result.levels], "x--", label="lifted")
ax0.set_ylabel("cost")
ax0.legend()
ax1.plot(ps, [level.min_eigenvalue for level in result.levels], "o-")
ax1.axhline(params.optimality_threshold, color="r", linestyle=":")
ax1.set_ylabel("min eigenvalue")
ax1.set_xlabel("p")
plt.show()
