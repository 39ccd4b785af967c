import numpy as np

def cosine_similarity(v1: np.ndarray, v2: np.ndarray) -> float:
    denom = np.linalg.norm(v1) * np.linalg.norm(v2)
    if denom == 0:
        return 0.0
    return float(np.dot(v1, v2) / denom)

def batch_cosine_similarity(query_vec: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Compute cosine similarity between query_vec and all rows in matrix.
    query_vec: (d,)
    matrix: (n, d)
    Returns: (n,) scores
    """
    norm_q = np.linalg.norm(query_vec)
    norm_m = np.linalg.norm(matrix, axis=1)

    # Avoid div by zero
    norm_product = norm_q * norm_m
    norm_product[norm_product == 0] = 1e-9

    dot_products = np.dot(matrix, query_vec)
    return dot_products / norm_product

def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalise each row; zero rows stay zero."""
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms

def centroid(matrix: np.ndarray) -> np.ndarray:
    """Mean of the normalised rows, accumulated in float64."""
    return normalize_rows(matrix.astype(np.float64)).mean(axis=0)

def to_unit_interval(cos: float) -> float:
    """Map a cosine in [-1, 1] onto [0, 1]."""
    return float(min(1.0, max(0.0, (cos + 1.0) / 2.0)))
