"""
@module: css.selection
@depends: sklearn
@exports: BaseSubsetSelector
@paper_ref: N/A
@data_flow: fitted subset -> column-reduced data

Shared scikit-learn plumbing for the subset selectors.
"""

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin


class BaseSubsetSelector(BaseEstimator, TransformerMixin):
    """
    Base class for column subset selectors.

    Subclasses implement ``fit`` and call :meth:`_store_selection`. The
    selected column indices are kept in ``selected_`` (in the order the
    selector produced them).

    Example:
        >>> selector = SwappingSelector(n_select=3, random_state=0)
        >>> X_selected = selector.fit_transform(X)
    """

    selected_: Optional[List[int]] = None

    def _store_selection(self, X, selected: Sequence[int]) -> None:
        self.selected_ = [int(i) for i in selected]
        self.n_features_in_ = X.shape[1]
        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
            self.selected_features_ = [X.columns[i] for i in self.selected_]

    def _check_fitted(self) -> None:
        if self.selected_ is None:
            raise RuntimeError("Must call fit() before transform()")

    def transform(self, X):
        """Return only the selected columns."""
        self._check_fitted()
        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X.shape[1]} columns, selector was fitted on {self.n_features_in_}"
            )
        if isinstance(X, pd.DataFrame):
            return X.iloc[:, self.selected_].copy()
        return np.asarray(X)[:, self.selected_]

    def get_support(self, indices: bool = False):
        """Boolean mask of selected columns, or their indices when ``indices=True``."""
        self._check_fitted()
        if indices:
            return np.asarray(self.selected_, dtype=int)
        mask = np.zeros(self.n_features_in_, dtype=bool)
        mask[self.selected_] = True
        return mask
