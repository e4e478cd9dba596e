"""
Example of survey data preparation and estimation using the SurveyEstimationTool.

This example demonstrates the workflow from ingested rows through the
cleaning pipeline to weighted and unweighted estimates.
"""

import numpy as np

from SurveyEstimationTool import SurveyEstimationTool


def create_sample_survey_rows(n_responses=500):
    """Create sample survey rows as an ingestion step would deliver them."""
    rng = np.random.default_rng(42)

    ages = rng.normal(40, 15, n_responses).astype(int).clip(15, 85)
    incomes = rng.lognormal(10.5, 0.6, n_responses).round(0)
    weights = rng.uniform(0.5, 2.5, n_responses).round(3)

    rows = []
    for i in range(n_responses):
        rows.append({
            'respondent_id': str(i + 1),
            'region': rng.choice(['North', 'South', 'East', 'West']),
            'age': str(ages[i]),
            # Roughly 8% item non-response on income
            'income': '' if rng.random() < 0.08 else str(incomes[i]),
            'household_size': str(rng.integers(1, 7)),
            'weight': str(weights[i]),
        })

    return rows, ['respondent_id', 'region', 'age', 'income', 'household_size', 'weight']


def main():
    """Run the example workflow."""
    print("=" * 60)
    print("SURVEY ESTIMATION EXAMPLE")
    print("=" * 60)

    print("\n1. Creating sample survey data...")
    rows, columns = create_sample_survey_rows()
    print(f"   - Created survey with {len(rows)} responses")

    print("\n2. Initializing Survey Estimation Tool...")
    tool = SurveyEstimationTool(log_level='WARNING')
    tool.load_records(rows, columns)

    tool.set_cleaning_config({
        'imputation': {'column': 'income', 'method': 'median'},
        'outlier': {'column': 'income', 'method': 'iqr', 'threshold': 1.5},
        'validationRule': 'age > 17'
    })
    tool.set_schema_mapping({
        'uniqueId': 'respondent_id',
        'strata': 'region',
        'weight': 'weight',
        'analysisVar1': 'income',
        'analysisVar2': 'household_size'
    })

    print("\n3. Running the cleaning pipeline...")
    result = tool.run_cleaning_pipeline()
    for line in result.log_lines():
        print(f"   - {line}")

    print("\n4. Computing estimates...")
    for estimate in tool.estimate_all():
        for label, stats in (('unweighted', estimate.unweighted), ('weighted', estimate.weighted)):
            print(
                f"   - {estimate.name} ({label}): N={stats.count}, "
                f"Mean={stats.mean:.2f} ± {stats.moe:.2f}, Total={stats.total:.0f}"
            )

    print("\n5. Summary")
    summary = tool.get_analysis_summary()
    print(f"   - Records retained: {summary['n_records_retained']} of {summary['n_records']}")
    print(f"   - Outlier flags: {summary['outlier_counts']}")


if __name__ == '__main__':
    main()
