"""
Aggregate Auditor.

Compares stored restaurant aggregates against a fresh recomputation and
exports the comparison as a CSV table.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import pandas as pd

from ratingsync.reconciler.aggregation import AggregationReconciler

logger = logging.getLogger(__name__)

COLUMNS = [
    "Restaurant",
    "Stored Count",
    "Stored Average",
    "Actual Count",
    "Actual Average",
    "Drift"
]


class AggregateAuditor:
    """
    Detects drift between stored and recomputed aggregates.
    Read only: repairing drift is reconcile_all's job.
    """

    def __init__(self, reconciler: AggregationReconciler, tolerance: float = 1e-9):
        """
        Initialize auditor.

        Args:
            reconciler: Reconciler whose store and recomputation are audited
            tolerance: Largest average difference not reported as drift
        """
        self.reconciler = reconciler
        self.store = reconciler.store
        self.tolerance = tolerance

    def build_table(self, group_ids: Optional[Iterable[str]] = None) -> pd.DataFrame:
        """
        Build one row per restaurant of stored vs actual aggregate.

        A restaurant with no stored aggregate has NaN stored values and
        counts as drifted.

        Returns:
            DataFrame sorted by actual count (descending)
        """
        if group_ids is None:
            group_ids = self.store.list_groups()

        rows = []
        for group_id in group_ids:
            stored = self.store.get_aggregate(group_id)
            actual = self.reconciler.recompute(group_id)

            if stored is None:
                drift = True
            else:
                drift = (
                    stored.count != actual.count
                    or abs(stored.average - actual.average) > self.tolerance
                )

            rows.append({
                "Restaurant": group_id,
                "Stored Count": stored.count if stored else None,
                "Stored Average": stored.average if stored else None,
                "Actual Count": actual.count,
                "Actual Average": actual.average,
                "Drift": drift
            })

        df = pd.DataFrame(rows, columns=COLUMNS)
        if df.empty:
            logger.warning("No restaurants found, creating empty audit table")
            return df

        df = df.sort_values(["Actual Count", "Restaurant"], ascending=[False, True])
        df = df.reset_index(drop=True)

        logger.info(
            f"Audited {len(df)} restaurants, {int(df['Drift'].sum())} with drift"
        )
        return df

    def drifted_groups(self, table: pd.DataFrame) -> List[str]:
        return table.loc[table["Drift"], "Restaurant"].tolist()

    def export(self, output_dir: str, group_ids: Optional[Iterable[str]] = None) -> str:
        """
        Save the audit table to CSV with a JSON metadata sidecar.

        Args:
            output_dir: Directory to save output
            group_ids: Restaurants to audit (defaults to all)

        Returns:
            Path to generated CSV file
        """
        df = self.build_table(group_ids)

        generated_at = datetime.now(timezone.utc)
        stamp = generated_at.strftime("%Y%m%dT%H%M%SZ")

        os.makedirs(output_dir, exist_ok=True)
        output_path = os.path.join(output_dir, f"audit_{stamp}.csv")
        df.to_csv(output_path, index=False)

        drifted = self.drifted_groups(df) if not df.empty else []
        metadata = {
            "total_restaurants": len(df),
            "drifted_restaurants": drifted,
            "tolerance": self.tolerance,
            "generated_at": generated_at.isoformat().replace("+00:00", "Z")
        }
        metadata_path = os.path.join(output_dir, f"audit_{stamp}_metadata.json")
        with open(metadata_path, 'w') as f:
            json.dump(metadata, f, indent=2)

        logger.info(f"Audit table saved to {output_path} ({len(drifted)} drifted)")
        return output_path
