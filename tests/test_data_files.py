"""
Input and Output File Tests

Tests the input file loaders and their error reporting, per-iteration path
patterns and the TSV report writers.
"""

import os
import sys
import unittest

# Add src and tests directories to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np

from bt_components.constraints import create_constraint
from bt_components.data_files import (
    format_iteration_path, load_bounds, load_data, load_trials, load_params, design_var_index
)
from bt_components.model import TrainingData
from bt_components.order_statistics import FitnessQuartiles
from bt_components.population_management import TrainingPopulation
from bt_components.reporting import BTReporter, ConvergenceWriter
from bt_exceptions import ConfigurationError, InputFileError, InputFormatError, ReportingError
from bt_logging import setup_logging
from test_fixtures import TestFixtures, TestDataBuilder


class TestIterationPaths(unittest.TestCase):
    """Test printf-style per-iteration file names."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)

    def test_default_patterns(self):
        self.assertEqual(format_iteration_path('integration%04zd.tsv', 3), 'integration0003.tsv')
        self.assertEqual(format_iteration_path('convergence%04zd.tsv', 12), 'convergence0012.tsv')

    def test_plain_conversions(self):
        self.assertEqual(format_iteration_path('trials%d.tsv', 12), 'trials12.tsv')
        self.assertEqual(format_iteration_path('run%03lu/out.tsv', 7), 'run007/out.tsv')

    def test_pattern_without_conversion(self):
        self.assertEqual(format_iteration_path('out.tsv', 5), 'out.tsv')
        self.assertEqual(format_iteration_path('100%%.tsv', 5), '100%.tsv')

    def test_invalid_pattern(self):
        with self.assertRaises(ConfigurationError):
            format_iteration_path('out%q.tsv', 1)

    def test_reporter_disabled_report(self):
        self.assertIsNone(BTReporter.iteration_path(None, 1))
        self.assertEqual(BTReporter.iteration_path('p%02d', 4), 'p04')


class TestLoaders(unittest.TestCase):
    """Test the whitespace-separated input loaders."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)
        self.builder = TestDataBuilder()

    def tearDown(self):
        self.builder.cleanup()

    def test_load_bounds(self):
        bounds = load_bounds(self.builder.write_bounds())
        rows = TestFixtures.get_bounds_rows()
        self.assertEqual(bounds.lower_bounds.tolist(), [rows[name][0] for name in rows])
        self.assertEqual(bounds.upper_bounds.tolist(), [rows[name][1] for name in rows])
        self.assertEqual(bounds.stdevs.tolist(), [rows[name][2] for name in rows])
        self.assertTrue(bounds.format_table().startswith("design_variable\tlower_bound\tupper_bound\tstdev\ntau1\t20.000000"))

    def test_bounds_names_ignore_case_and_default_to_zero(self):
        path = self.builder.write_lines('bounds.tsv', 'name lower upper stdev', ['TAU2 1 2 0.5', '', 'K1  0.1  0.2  0.01'])
        bounds = load_bounds(path)
        self.assertEqual(bounds.lower_bounds[1], 1.0)
        self.assertEqual(bounds.upper_bounds[4], 0.2)
        self.assertEqual(bounds.lower_bounds[0], 0.0)
        self.assertEqual(bounds.stdevs[8], 0.0)

    def test_unknown_bounds_name(self):
        path = self.builder.write_lines('bounds.tsv', 'header', ['tau1 1 2 3', 'gamma 1 2 3'])
        with self.assertRaises(InputFormatError) as context:
            load_bounds(path)
        self.assertEqual(context.exception.line_number, 3)
        self.assertEqual(context.exception.path, path)
        self.assertIn('gamma', str(context.exception))

    def test_short_bounds_line(self):
        path = self.builder.write_lines('bounds.tsv', 'header', ['tau1 1 2'])
        with self.assertRaises(InputFormatError):
            load_bounds(path)

    def test_missing_file(self):
        with self.assertRaises(InputFileError) as context:
            load_bounds(self.builder.path('missing.tsv'))
        self.assertIsInstance(context.exception, OSError)

    def test_empty_file(self):
        with self.assertRaises(InputFormatError):
            load_data(self.builder.write_text('data.tsv', ''))

    def test_load_data(self):
        data = TestFixtures.get_training_data(10)
        loaded = load_data(self.builder.write_data(data=data))
        self.assertEqual(loaded.size, 10)
        np.testing.assert_array_equal(loaded.time, data.time)
        np.testing.assert_array_equal(loaded.performance, data.performance)
        np.testing.assert_array_equal(loaded.training_stress, data.training_stress)

    def test_data_parse_error(self):
        path = self.builder.write_lines('data.tsv', 'time performance stress', ['0 500 10', '1 abc 20'])
        with self.assertRaises(InputFormatError) as context:
            load_data(path)
        self.assertEqual(context.exception.line_number, 3)
        self.assertIn('1 abc 20', str(context.exception))

    def test_data_times_must_not_decrease(self):
        path = self.builder.write_lines('data.tsv', 'header', ['1 500 10', '0 500 10'])
        with self.assertRaises(InputFormatError):
            load_data(path)

    def test_load_trials(self):
        trials = load_trials(self.builder.write_trials(indices=[0, 4, 9]), data_size=10)
        self.assertEqual(trials.tolist(), [0, 4, 9])
        self.assertEqual(trials.dtype, np.intp)

    def test_trials_errors(self):
        cases = {
            'out_of_range.tsv': ['1', '10'],
            'not_increasing.tsv': ['3', '3'],
            'negative.tsv': ['-1'],
            'not_integer.tsv': ['2.5'],
            'empty.tsv': [],
        }
        for name, lines in cases.items():
            path = self.builder.write_lines(name, 'trial', lines)
            with self.assertRaises(InputFormatError, msg=name):
                load_trials(path, data_size=10)

    def test_load_params(self):
        parameters = load_params(self.builder.write_params())
        self.assertEqual(parameters, TestFixtures.get_parameters())

    def test_params_names_are_case_sensitive(self):
        path = self.builder.write_lines('params.tsv', 'name value', ['TAU1 40'])
        with self.assertRaises(InputFormatError):
            load_params(path)

    def test_missing_params_are_zero(self):
        parameters = load_params(self.builder.write_lines('params.tsv', 'name value', ['k1 0.5']))
        self.assertEqual(parameters.k1, 0.5)
        self.assertEqual(parameters.tau1, 0.0)

    def test_design_var_index(self):
        self.assertEqual(design_var_index('Alpha'), 2)
        self.assertEqual(design_var_index('Alpha', case_sensitive=True), -1)
        self.assertEqual(design_var_index('gamma'), -1)


class TestReporting(unittest.TestCase):
    """Test the TSV report writers."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)
        self.builder = TestDataBuilder()
        self.reporter = BTReporter()

    def tearDown(self):
        self.builder.cleanup()

    def test_write_designs(self):
        path = self.builder.path('designs.tsv')
        design = TestFixtures.get_parameters().as_vector()
        self.reporter.write_designs(path, np.array([design, design]), [1.5, float('nan')])
        rows = TestDataBuilder.read_table(path)
        self.assertEqual(rows[0], ['tau1', 'tau2', 'alpha', 'beta', 'k1', 'k2', 'p0', 'f0', 'u0',
                                   'mean_abs_residual'])
        self.assertEqual(rows[1][0], '40.000000')
        self.assertEqual(rows[1][-1], '1.500000')
        self.assertEqual(rows[2][-1], 'nan')
        self.assertEqual(len(rows), 3)
        self.assertIn(path, self.reporter.files_written)

    def test_write_training_population(self):
        path = self.builder.path('population.tsv')
        population = TrainingPopulation(np.full((2, 3), 50.0), final_performances=[510.0, 505.0],
                                        penalties=[0.0, 1.0], roughnesses=[0.0, 0.0],
                                        fitnesses=[510.0, 504.0])
        self.reporter.write_training_population(path, population)
        rows = TestDataBuilder.read_table(path)
        self.assertEqual(rows[0], ['day000', 'day001', 'day002', 'final_performance',
                                   'penalty', 'roughness', 'fitness'])
        self.assertEqual(rows[2], ['50.000000'] * 3 + ['505.000000', '1.000000', '0.000000', '504.000000'])

    def test_write_data(self):
        path = self.builder.path('integration.tsv')
        self.reporter.write_data(path, TrainingData([0.0, 1.0], [500.0, 501.25], [10.0, 0.0]))
        rows = TestDataBuilder.read_table(path)
        self.assertEqual(rows[0], ['day', 'performance', 'training_stress'])
        self.assertEqual(rows[2], ['1.000000', '501.250000', '0.000000'])

    def test_write_plan_integration(self):
        path = self.builder.path('plan.tsv')
        constraint = create_constraint('fitness_max_stress_fatigue_max_stress')
        rows = [(0, 60.0, 10.0, 5.0, 505.0, 1.0, 2.0), (1, 0.0, 11.0, 6.0, 505.0, 1.5, 2.5)]
        self.reporter.write_plan_integration(path, rows, constraint)
        table = TestDataBuilder.read_table(path)
        self.assertEqual(table[0], ['day', 'stress', 'fitness', 'fatigue', 'performance',
                                    'fitness_max_stress', 'fatigue_max_stress'])
        self.assertEqual(table[1][0], '0')
        self.assertEqual(table[2][1], '0.000000')

    def test_report_directories_created(self):
        path = os.path.join(self.builder.directory, 'reports', 'designs.tsv')
        self.reporter.write_designs(path, np.zeros((1, 9)))
        self.assertTrue(os.path.exists(path))

    def test_unwritable_path(self):
        blocker = self.builder.write_text('blocker', 'not a directory')
        with self.assertRaises(ReportingError) as context:
            self.reporter.write_designs(os.path.join(blocker, 'designs.tsv'), np.zeros((1, 9)))
        self.assertEqual(context.exception.file_type, 'designs')
        with self.assertRaises(ReportingError):
            ConvergenceWriter(os.path.join(blocker, 'convergence.tsv'))

    def test_convergence_writer(self):
        path = self.builder.path('convergence.tsv')
        with ConvergenceWriter(path) as writer:
            writer.write(1, FitnessQuartiles(-3.0, -2.0, -1.5, -1.0, 0.0))
            writer.write(2, FitnessQuartiles(-2.0, -1.0, -0.5, -0.25, 0.0))
            self.assertEqual(writer.rows_written, 2)
        rows = TestDataBuilder.read_table(path)
        self.assertEqual(rows[0], ['generation', 'min', 'q1', 'median', 'q3', 'max'])
        self.assertEqual(rows[1], ['1', '-3.000000', '-2.000000', '-1.500000', '-1.000000', '0.000000'])
        self.assertEqual(len(rows), 3)


if __name__ == '__main__':
    unittest.main(verbosity=2)
