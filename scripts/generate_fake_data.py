"""Generate fake co-purchase data for testing and development.

This module creates a synthetic tab-separated file of product pairs in the
same layout as the Amazon co-purchasing network: a header row followed by
``ProductID<TAB>CombinedProductID`` lines. Products are grouped into
clusters and pairs mostly stay inside a cluster, so a trained model has
some structure to find.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_pairs
        df = generate_fake_pairs(num_products=200, num_pairs=2000)
"""

import random
from pathlib import Path
from typing import Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_PRODUCTS = 500
DEFAULT_NUM_PAIRS = 5000
DEFAULT_NUM_CLUSTERS = 20
DEFAULT_AFFINITY = 0.8
DEFAULT_SEED = 42
HEADER = ["ProductID", "CombinedProductID"]


def generate_fake_pairs(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_pairs: int = DEFAULT_NUM_PAIRS,
    num_clusters: int = DEFAULT_NUM_CLUSTERS,
    affinity: float = DEFAULT_AFFINITY,
    seed: Optional[int] = DEFAULT_SEED,
) -> pd.DataFrame:
    """Generate synthetic co-purchase pairs.

    Args:
        num_products: Number of distinct products, ids 1..num_products.
        num_pairs: Number of pair rows to generate.
        num_clusters: Number of product clusters.
        affinity: Probability that the combined product is drawn from the
            same cluster as the product.
        seed: Random seed, or None for a non-reproducible run.

    Returns:
        A pandas DataFrame with columns ``ProductID`` and ``CombinedProductID``.

    Raises:
        ValueError: If a count is non-positive, there are more clusters than
            products, or affinity is outside [0, 1].
    """
    if num_products <= 0 or num_pairs <= 0 or num_clusters <= 0:
        raise ValueError("num_products, num_pairs and num_clusters must be positive")
    if num_clusters > num_products:
        raise ValueError("num_clusters cannot exceed num_products")
    if not 0.0 <= affinity <= 1.0:
        raise ValueError("affinity must be between 0 and 1")

    rng = random.Random(seed)

    clusters = {}
    for product_id in range(1, num_products + 1):
        clusters.setdefault(product_id % num_clusters, []).append(product_id)

    pairs = []
    for _ in range(num_pairs):
        product_id = rng.randint(1, num_products)
        if rng.random() < affinity:
            combined_id = rng.choice(clusters[product_id % num_clusters])
        else:
            combined_id = rng.randint(1, num_products)
        pairs.append((product_id, combined_id))

    return pd.DataFrame(pairs, columns=HEADER)


def main() -> None:
    """Generate fake pairs with default parameters and save them to data/fake_pairs.tsv."""
    print(f"Generating {DEFAULT_NUM_PAIRS} fake co-purchase pairs...")
    print(f"Products: {DEFAULT_NUM_PRODUCTS}, Clusters: {DEFAULT_NUM_CLUSTERS}")

    try:
        df = generate_fake_pairs()
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    output_path = data_dir / "fake_pairs.tsv"
    df.to_csv(output_path, sep="\t", index=False)

    print(f"\nData generated successfully!")
    print(f"Saved to: {output_path}")
    print(f"\nData summary:")
    print(f"  Total pairs: {len(df)}")
    print(f"  Distinct products: {df['ProductID'].nunique()}")
    print(f"  Distinct combined products: {df['CombinedProductID'].nunique()}")


if __name__ == "__main__":
    main()
