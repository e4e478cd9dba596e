"""
Tests for survey estimation and the SurveyEstimationTool.

This module contains unit tests for the weighted estimator and integration
tests for the cleaning-then-estimation workflow.
"""

import json
import math
import os
import tempfile
import unittest

import numpy as np
import pandas as pd

from SurveyEstimationTool import SurveyEstimationTool
from SurveyEstimationTool.data_processing.models import (
    SurveyTable, SchemaMapping, SchemaRole, SchemaMappingError, EstimateResult
)
from SurveyEstimationTool.descriptive_analysis.weighted_estimates import WeightedEstimator, estimate


class TestWeightedEstimator(unittest.TestCase):
    """Test cases for unweighted and weighted point estimates."""

    def setUp(self):
        self.estimator = WeightedEstimator()
        self.table = SurveyTable.from_records(
            [{'v': '10', 'w': '1'}, {'v': '20', 'w': '3'}],
            ['v', 'w']
        )

    def test_means(self):
        result = self.estimator.estimate(self.table, 'v', 'w')

        self.assertEqual(result.unweighted.mean, 15.0)
        self.assertEqual(result.weighted.mean, 17.5)

    def test_totals_and_counts(self):
        result = self.estimator.estimate(self.table, 'v', 'w')

        self.assertEqual(result.unweighted.count, 2)
        self.assertEqual(result.unweighted.total, 30.0)
        self.assertEqual(result.weighted.count, 2)
        self.assertEqual(result.weighted.total, 70.0)
        self.assertEqual(result.weighted.sum_of_weights, 4.0)

    def test_margins_of_error(self):
        result = self.estimator.estimate(self.table, 'v', 'w')

        # Sample variance 50, SE = sqrt(50 / 2) = 5
        self.assertAlmostEqual(result.unweighted.standard_error, 5.0)
        self.assertAlmostEqual(result.unweighted.moe, 9.8)

        # Weighted variance (1 * 56.25 + 3 * 6.25) / 4 = 18.75
        self.assertAlmostEqual(result.weighted.variance, 18.75)
        self.assertAlmostEqual(result.weighted.moe, 1.96 * math.sqrt(18.75 / 2))
        self.assertTrue(result.weighted.approximate_se)
        self.assertFalse(result.unweighted.approximate_se)

    def test_absent_weight_only_excludes_weighted_branch(self):
        table = SurveyTable.from_records(
            [{'v': '10', 'w': '1'}, {'v': '20', 'w': ''}, {'v': '', 'w': '5'}],
            ['v', 'w']
        )
        result = self.estimator.estimate(table, 'v', 'w')

        self.assertEqual(result.unweighted.count, 2)
        self.assertEqual(result.weighted.count, 1)
        self.assertEqual(result.weighted.mean, 10.0)
        self.assertEqual(result.weighted.moe, 0.0)

    def test_empty_data_gives_zeros(self):
        table = SurveyTable.from_records([{'v': '', 'w': '1'}], ['v', 'w'])
        result = self.estimator.estimate(table, 'v', 'w')

        for stats in (result.unweighted, result.weighted):
            self.assertEqual(stats.count, 0)
            self.assertEqual(stats.mean, 0.0)
            self.assertEqual(stats.moe, 0.0)
            self.assertEqual(stats.total, 0.0)

    def test_single_value_has_zero_variance(self):
        table = SurveyTable.from_records([{'v': '7', 'w': '2'}], ['v', 'w'])
        result = self.estimator.estimate(table, 'v', 'w')

        self.assertEqual(result.unweighted.mean, 7.0)
        self.assertEqual(result.unweighted.moe, 0.0)
        self.assertEqual(result.weighted.mean, 7.0)
        self.assertEqual(result.weighted.moe, 0.0)

    def test_zero_weights_give_zero_mean(self):
        table = SurveyTable.from_records(
            [{'v': '10', 'w': '0'}, {'v': '20', 'w': '0'}],
            ['v', 'w']
        )
        result = self.estimator.estimate(table, 'v', 'w')

        self.assertEqual(result.weighted.count, 2)
        self.assertEqual(result.weighted.mean, 0.0)
        self.assertEqual(result.weighted.moe, 0.0)
        self.assertFalse(np.isnan(result.weighted.mean))

    def test_unmapped_weight_raises(self):
        schema = SchemaMapping.from_dict({'analysisVar1': 'v'})

        with self.assertRaises(SchemaMappingError) as context:
            self.estimator.estimate_from_schema(self.table, schema)

        self.assertEqual(context.exception.role, SchemaRole.WEIGHT)
        self.assertIsInstance(context.exception, ValueError)

    def test_unmapped_analysis_variable_raises(self):
        schema = SchemaMapping.from_dict({'weight': 'w'})

        with self.assertRaises(SchemaMappingError):
            self.estimator.estimate_from_schema(self.table, schema)

        with self.assertRaises(SchemaMappingError):
            estimate(self.table, None, 'w')

    def test_estimate_all_is_independent_per_variable(self):
        table = SurveyTable.from_records(
            [{'a': '1', 'b': '100', 'w': '1'}, {'a': '3', 'b': '', 'w': '1'}],
            ['a', 'b', 'w']
        )
        schema = SchemaMapping.from_dict({'weight': 'w', 'analysisVar1': 'a', 'analysisVar2': 'b'})
        results = self.estimator.estimate_all(table, schema)

        self.assertEqual([r.name for r in results], ['a', 'b'])
        self.assertEqual(results[0].unweighted.mean, 2.0)
        self.assertEqual(results[1].unweighted.count, 1)
        self.assertEqual(results[1].unweighted.mean, 100.0)

    def test_result_dict_shape(self):
        result = self.estimator.estimate(self.table, 'v', 'w')
        data = result.to_dict()

        self.assertEqual(set(data), {'name', 'unweighted', 'weighted'})
        self.assertEqual(set(data['weighted']), {'count', 'mean', 'moe', 'total'})
        self.assertEqual(data['name'], 'v')


class TestSurveyEstimationTool(unittest.TestCase):
    """Test cases for the SurveyEstimationTool workflow."""

    def setUp(self):
        self.rows = [
            {'id': '1', 'age': '17', 'income': '100', 'wt': '1.0'},
            {'id': '2', 'age': '19', 'income': '200', 'wt': '2.0'},
            {'id': '3', 'age': '', 'income': '', 'wt': '1.5'},
            {'id': '4', 'age': '45', 'income': '300', 'wt': ''},
            {'id': '5', 'age': '52', 'income': '250', 'wt': '0.5'},
        ]
        self.columns = ['id', 'age', 'income', 'wt']
        self.tool = SurveyEstimationTool(log_level='ERROR')
        self.tool.load_records(self.rows, self.columns)

    def test_initialization(self):
        tool = SurveyEstimationTool(log_level='ERROR')
        self.assertIsNone(tool.data)
        self.assertIsNotNone(tool.data_cleaner)
        self.assertIsNotNone(tool.estimator)
        self.assertTrue(tool.cleaning_config.is_empty())

    def test_pipeline_then_estimate(self):
        self.tool.set_cleaning_config({
            'imputation': {'column': 'income', 'method': 'mean'},
            'outlier': {'column': 'age', 'method': 'iqr'},
            'validationRule': 'age > 18'
        })
        self.tool.set_schema_mapping({'uniqueId': 'id', 'weight': 'wt', 'analysisVar1': 'income'})

        result = self.tool.run_cleaning_pipeline()
        self.assertEqual(result.table.records['id'].tolist(), ['2', '3', '4', '5'])
        self.assertEqual(result.table.records['income'].tolist(), ['200', '212.50', '300', '250'])
        self.assertEqual(len(result.log), 3)

        estimate_result = self.tool.estimate()
        self.assertIsInstance(estimate_result, EstimateResult)
        self.assertEqual(estimate_result.unweighted.count, 4)
        self.assertAlmostEqual(estimate_result.unweighted.mean, 240.625)
        self.assertEqual(estimate_result.weighted.count, 3)
        self.assertAlmostEqual(estimate_result.weighted.mean, (400 + 318.75 + 125) / 4.0)

        # Loaded data is untouched by the run
        self.assertEqual(self.tool.data.records['income'].tolist(), ['100', '200', '', '300', '250'])

    def test_single_estimate_appears_in_summary(self):
        self.tool.set_schema_mapping({'weight': 'wt', 'analysisVar1': 'age', 'analysisVar2': 'income'})

        self.tool.estimate()
        self.tool.estimate()
        self.tool.estimate(role=SchemaRole.ANALYSIS_VAR_2)

        summary = self.tool.get_analysis_summary()
        self.assertEqual([e['name'] for e in summary['estimates']], ['age', 'income'])

    def test_estimate_requires_weight_mapping(self):
        self.tool.set_schema_mapping({'analysisVar1': 'income'})

        with self.assertRaises(SchemaMappingError):
            self.tool.estimate()

    def test_estimate_without_data_raises(self):
        tool = SurveyEstimationTool(log_level='ERROR')

        with self.assertRaises(ValueError):
            tool.run_cleaning_pipeline()

    def test_config_file(self):
        config = {
            'cleaning': {'validationRule': 'age < 50'},
            'schema': {'weight': 'wt', 'analysisVar1': 'age', 'analysisVar2': 'income'}
        }
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(config, f)
            config_path = f.name

        try:
            tool = SurveyEstimationTool(config_path=config_path, log_level='ERROR')
            tool.load_records(self.rows, self.columns)
            tool.run_cleaning_pipeline()
            results = tool.estimate_all()
        finally:
            os.unlink(config_path)

        self.assertEqual(tool.cleaned_data.n_rows, 4)
        self.assertEqual([r.name for r in results], ['age', 'income'])

    def test_missing_config_file_falls_back_to_defaults(self):
        tool = SurveyEstimationTool(config_path='/nonexistent/config.json', log_level='ERROR')

        self.assertEqual(tool.config, {})
        self.assertTrue(tool.cleaning_config.is_empty())

    def test_load_dataframe(self):
        frame = pd.DataFrame({'v': [1.0, np.nan, 3.0], 'w': [1, 1, 2]})
        self.tool.load_dataframe(frame)
        self.tool.set_schema_mapping({'weight': 'w', 'analysisVar1': 'v'})

        result = self.tool.estimate()

        self.assertEqual(result.unweighted.count, 2)
        self.assertAlmostEqual(result.weighted.mean, 7.0 / 3.0)

    def test_get_analysis_summary(self):
        self.tool.set_cleaning_config({'outlier': {'column': 'age', 'method': 'z-score'}})
        self.tool.set_schema_mapping({'weight': 'wt', 'analysisVar1': 'age'})
        self.tool.run_cleaning_pipeline()
        self.tool.estimate_all()

        summary = self.tool.get_analysis_summary()

        self.assertTrue(summary['data_loaded'])
        self.assertTrue(summary['data_cleaned'])
        self.assertEqual(summary['n_records'], 5)
        self.assertEqual(summary['n_records_retained'], 5)
        self.assertEqual(summary['item_nonresponse']['age'], 20.0)
        self.assertIn('age_is_outlier', summary['outlier_counts'])
        self.assertEqual(len(summary['cleaning_log']), 1)
        self.assertEqual(summary['estimates'][0]['name'], 'age')


if __name__ == '__main__':
    unittest.main()
