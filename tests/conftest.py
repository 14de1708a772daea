"""
Shared fixtures: a small customer dataset and its schema document.
"""
import json

import numpy as np
import pandas as pd
import pytest

CITIES = ['Paris', 'Rome', 'Berlin', 'Madrid', 'Lisbon', 'Vienna',
          'Prague', 'Oslo', 'Dublin', 'Athens', 'Riga', 'Sofia']
CITY_COUNTS = [20, 15, 12, 10, 9, 8, 7, 6, 5, 4, 2, 2]
MISSING_AGE_ROWS = [3, 17, 42, 66, 90]


@pytest.fixture
def schema_document():
    """Schema document in the external wire format"""
    return {
        'title': 'customer response',
        'modelCategory': 'binary_classification',
        'id': {'name': 'customer_id'},
        'target': {'name': 'response'},
        'features': [
            {'name': 'age', 'dataType': 'NUMERIC', 'nullable': True},
            {'name': 'city', 'dataType': 'CATEGORICAL', 'nullable': False}
        ]
    }


@pytest.fixture
def training_data():
    """100 rows: numeric 'age' with 5 nulls, 12-valued 'city', yes/no target"""
    rng = np.random.RandomState(42)
    n_samples = 100

    cities = np.repeat(CITIES, CITY_COUNTS)
    rng.shuffle(cities)

    age = rng.normal(40, 12, n_samples).round(1)
    age[MISSING_AGE_ROWS] = np.nan

    response = np.where(
        (np.nan_to_num(age, nan=40) > 40) | np.isin(cities, ['Paris', 'Rome']),
        'yes', 'no'
    )
    # Keep both classes present regardless of the draw
    response[0], response[1] = 'yes', 'no'

    return pd.DataFrame({
        'customer_id': [f'C{i:04d}' for i in range(n_samples)],
        'age': age,
        'city': cities.astype(object),
        'response': response.astype(object)
    })


@pytest.fixture
def input_dirs(tmp_path, schema_document, training_data):
    """Schema and training CSV written to disk the way the CLI expects them"""
    schema_dir = tmp_path / "inputs" / "schema"
    train_dir = tmp_path / "inputs" / "data" / "training"
    schema_dir.mkdir(parents=True)
    train_dir.mkdir(parents=True)

    with open(schema_dir / "customers_schema.json", 'w') as f:
        json.dump(schema_document, f)
    training_data.to_csv(train_dir / "customers_train.csv", index=False)

    return {
        'schema_dir': schema_dir,
        'train_dir': train_dir,
        'artifacts_dir': tmp_path / "model" / "artifacts"
    }
