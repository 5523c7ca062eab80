import numpy as np
from time import perf_counter
from sklearn.datasets import load_diabetes

import cartpy
from cartpy.validation import cross_validate

data = load_diabetes()
X, y = data.data, data.target
feats = list(data.feature_names)

t0 = perf_counter()
tree = cartpy.fit(X, y, max_depth=20, max_nodes=60, min_samples_leaf=5, feature_names=feats)
print(f"fit: {perf_counter()-t0:.3f} s  ({tree.node_count} nodes, depth {tree.depth})")

print("----- importance -----")
for name, value in zip(feats, cartpy.importance(tree)):
    print(f"{name:<15} {value:.4f}")

score = cross_validate(X, y, 10, lambda Xt, yt: cartpy.fit(Xt, yt, max_nodes=60, feature_names=feats))
print(f"10-CV RMSE = {score:.4f}")

with open("diabetes_tree.dot", "w") as fh:
    fh.write(cartpy.dot(tree))
print(np.round(tree.predict_many(X[:5]), 2))
