"""
Fitness-Fatigue Model Tests

Tests the Euler integrator, parameter feasibility, the residual objective,
training plan integration and the constraint penalty strategies.
"""

import io
import os
import sys
import math
import unittest

# Add src and tests directories to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np

from bt_components.model import (
    ModelParameters, TrainingData, integrate, calculate_error, calculate_errors,
    infeasible_mask, final_performance_and_penalty, integrate_plan
)
from bt_components.constraints import (
    create_constraint, available_constraints, get_constraint_registry, ConstraintStrategy
)
from bt_exceptions import PopulationError, UnknownConstraintError, ConfigurationError
from bt_logging import setup_logging
from test_fixtures import TestFixtures


class TestIntegrator(unittest.TestCase):
    """Test explicit Euler integration of the model."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)
        # No training response: fitness and fatigue only decay.
        self.parameters = ModelParameters(tau1=10.0, tau2=5.0, alpha=1.5, beta=0.5,
                                          k1=0.0, k2=0.0, p0=100.0, f0=20.0, u0=9.0)
        self.data = TrainingData([0.0, 2.0], [0.0, 90.0], [50.0, 0.0])

    def test_single_interval_matches_euler_step(self):
        """Test one interval against the closed-form Euler update."""
        dt = 2.0
        fitness = 20.0 + dt * (-1 / 10.0 * 20.0 ** 1.5)
        fatigue = 9.0 + dt * (-1 / 5.0 * 9.0 ** 0.5)
        expected = 100.0 + fitness - fatigue

        result = integrate(self.parameters.as_vector(), self.data)
        self.assertEqual(result.performance[0], self.parameters.initial_performance)
        self.assertAlmostEqual(result.performance[1], expected, places=10)

    def test_integrate_returns_copy(self):
        result = integrate(self.parameters.as_vector(), self.data)
        self.assertEqual(self.data.performance.tolist(), [0.0, 90.0])
        self.assertEqual(result.time.tolist(), self.data.time.tolist())
        self.assertEqual(result.training_stress.tolist(), self.data.training_stress.tolist())

    def test_single_trial_error(self):
        predicted = integrate(self.parameters.as_vector(), self.data).performance[1]
        error = calculate_error(self.parameters.as_vector(), self.data, [1])
        self.assertAlmostEqual(error, abs(90.0 - predicted), places=10)

    def test_integration_is_deterministic(self):
        data = TestFixtures.get_training_data(40)
        design = TestFixtures.get_parameters().as_vector()
        first = integrate(design, data).performance
        second = integrate(design, data).performance
        np.testing.assert_array_equal(first, second)

    def test_one_training_day(self):
        parameters = TestFixtures.get_parameters()
        data = TrainingData([0.0, 1.0], [0.0, 0.0], [100.0, 0.0])
        result = integrate(parameters.as_vector(), data)
        # k1 * w - k2 * w is negative for these constants, so performance drops first.
        expected = (parameters.p0
                    + parameters.f0 + (-parameters.f0 / parameters.tau1 + parameters.k1 * 100.0)
                    - parameters.u0 - (-parameters.u0 / parameters.tau2 + parameters.k2 * 100.0))
        self.assertAlmostEqual(result.performance[1], expected, places=10)


class TestResidualObjective(unittest.TestCase):
    """Test the sum of absolute residuals at the trial points."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)
        self.data = TestFixtures.get_training_data(30)
        self.trials = TestFixtures.get_trial_indices(30)
        self.design = TestFixtures.get_parameters().as_vector()

    def test_generating_parameters_fit_exactly(self):
        self.assertAlmostEqual(calculate_error(self.design, self.data, self.trials), 0.0, places=9)

    def test_matches_full_integration(self):
        design = self.design.copy()
        design[0] = 30.0
        predicted = integrate(design, self.data).performance
        expected = np.sum(np.abs(self.data.performance[self.trials] - predicted[self.trials]))
        self.assertAlmostEqual(calculate_error(design, self.data, self.trials), expected, places=9)

    def test_population_matches_single_designs(self):
        designs = np.tile(self.design, (3, 1))
        designs[1, 0] = 55.0
        designs[2, 4] = 0.15
        errors = calculate_errors(designs, self.data, self.trials)
        for row, design in enumerate(designs):
            self.assertAlmostEqual(errors[row], calculate_error(design, self.data, self.trials), places=9)

    def test_alpha_below_one_is_nan(self):
        design = self.design.copy()
        design[2] = 0.99
        self.assertTrue(math.isnan(calculate_error(design, self.data, self.trials)))
        self.assertTrue(math.isnan(calculate_error(design, self.data, [0])))

    def test_infeasible_mask(self):
        designs = np.tile(self.design, (7, 1))
        designs[1, 0] = -1.0   # tau1
        designs[2, 1] = -1.0   # tau2
        designs[3, 2] = 0.5    # alpha
        designs[4, 3] = 1.5    # beta
        designs[5, 4] = -0.1   # k1
        designs[6, 5] = -0.1   # k2
        self.assertEqual(infeasible_mask(designs).tolist(), [False] + [True] * 6)


class TestModelParameters(unittest.TestCase):
    """Test the parameter record."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)

    def test_vector_round_trip_order(self):
        parameters = TestFixtures.get_parameters()
        vector = parameters.as_vector()
        self.assertEqual(vector.tolist(), [40.0, 8.0, 1.0, 1.0, 0.1, 0.3, 500.0, 10.0, 5.0])
        self.assertEqual(ModelParameters.from_vector(vector), parameters)

    def test_wrong_length_rejected(self):
        with self.assertRaises(PopulationError):
            ModelParameters.from_vector([1.0, 2.0])

    def test_missing_names_default_to_zero(self):
        parameters = ModelParameters.from_mapping({'tau1': 12.0})
        self.assertEqual(parameters.tau1, 12.0)
        self.assertEqual(parameters.k2, 0.0)

    def test_training_data_lengths_checked(self):
        with self.assertRaises(PopulationError):
            TrainingData([0.0, 1.0], [0.0], [0.0, 1.0])


class TestPlanIntegration(unittest.TestCase):
    """Test final performance, penalty and the day-by-day report rows."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)
        self.parameters = TestFixtures.get_parameters()
        self.stresses = TestFixtures.get_training_stresses(14)

    def test_final_performance_matches_trajectory(self):
        constraint = create_constraint('max_300_stress')
        performance, penalty = final_performance_and_penalty(
            self.stresses[np.newaxis, :], 300.0, self.parameters, constraint)
        rows = integrate_plan(self.stresses, 300.0, self.parameters, constraint)
        self.assertAlmostEqual(performance[0], rows[-1][4], places=10)
        self.assertEqual(penalty[0], 0.0)

    def test_plan_rows(self):
        constraint = create_constraint('fitness_max_stress_fatigue_max_stress')
        rows = integrate_plan(self.stresses, 300.0, self.parameters, constraint)
        self.assertEqual(len(rows), 15)
        self.assertEqual(rows[0][:5], (0, 60.0, 10.0, 5.0, 505.0))
        self.assertEqual(rows[-1][0], 14)
        self.assertEqual(rows[-1][1], 0.0)
        self.assertEqual(len(rows[0]), 7)

    def test_penalty_counts_before_and_after_each_day(self):
        """Test a fixed cap is charged twice per over-limit day."""
        constraint = create_constraint('max_300_stress')
        stresses = np.array([[350.0, 100.0, 310.0]])
        _, penalty = final_performance_and_penalty(stresses, 400.0, self.parameters, constraint)
        self.assertAlmostEqual(penalty[0], 2 * 50.0 + 2 * 10.0)

    def test_population_rows_are_independent(self):
        constraint = create_constraint('fitness_max_stress')
        stresses = np.array([self.stresses, self.stresses * 0.5])
        performance, penalty = final_performance_and_penalty(stresses, 300.0, self.parameters, constraint)
        single, single_penalty = final_performance_and_penalty(
            stresses[1:], 300.0, self.parameters, constraint)
        self.assertAlmostEqual(performance[1], single[0], places=9)
        self.assertAlmostEqual(penalty[1], single_penalty[0], places=9)


class TestConstraints(unittest.TestCase):
    """Test the constraint strategies and their registry."""

    def setUp(self):
        setup_logging(level="ERROR", log_to_file=False)

    def step(self, name, training_stress, fitness=0.0, fatigue=0.0, max_daily_stress=300.0):
        constraint = create_constraint(name)
        return float(constraint.penalty_step(0.0, 0.0, fitness, fatigue, training_stress, max_daily_stress))

    def test_registered_names(self):
        self.assertEqual(set(available_constraints()), {
            'max_300_stress', 'fatigue_max_stress', 'fitness_max_stress',
            'fitness_max_stress_fatigue_max_stress', 'fitness_fatigue_ratio'
        })

    def test_unknown_constraint(self):
        with self.assertRaises(UnknownConstraintError) as context:
            create_constraint('no_such_constraint')
        self.assertIsInstance(context.exception, ConfigurationError)
        self.assertIsInstance(context.exception, ValueError)
        self.assertIn('max_300_stress', context.exception.available)

    def test_registry_creates_fresh_instances(self):
        registry = get_constraint_registry()
        first = registry.create('max_300_stress')
        self.assertIsInstance(first, ConstraintStrategy)
        self.assertIsNot(first, registry.create('max_300_stress'))

    def test_max_300_stress(self):
        self.assertEqual(self.step('max_300_stress', 350.0), 50.0)
        self.assertEqual(self.step('max_300_stress', 200.0), 0.0)

    def test_fatigue_max_stress(self):
        # No fatigue: the full maximum is allowed.
        self.assertAlmostEqual(self.step('fatigue_max_stress', 350.0), 50.0)
        self.assertEqual(self.step('fatigue_max_stress', 250.0), 0.0)

    def test_fitness_max_stress(self):
        # No fitness: only 10% of the maximum is allowed.
        self.assertAlmostEqual(self.step('fitness_max_stress', 50.0), 20.0)

    def test_combined_constraint_sums_both(self):
        self.assertAlmostEqual(self.step('fitness_max_stress_fatigue_max_stress', 350.0), 320.0 + 50.0)

    def test_fitness_fatigue_ratio(self):
        self.assertAlmostEqual(self.step('fitness_fatigue_ratio', 0.0, fitness=10.0, fatigue=9.0), 0.1)
        self.assertEqual(self.step('fitness_fatigue_ratio', 0.0, fitness=10.0, fatigue=5.0), 0.0)

    def test_vectorized_penalty(self):
        constraint = create_constraint('max_300_stress')
        penalty = constraint.penalty_step(np.array([1.0, 2.0]), None, None, None,
                                          np.array([301.0, 100.0]), 300.0)
        self.assertEqual(penalty.tolist(), [2.0, 2.0])

    def test_header_and_values(self):
        constraint = create_constraint('fitness_max_stress_fatigue_max_stress')
        stream = io.StringIO()
        constraint.print_header(stream)
        self.assertEqual(stream.getvalue(), '\tfitness_max_stress\tfatigue_max_stress')

        stream = io.StringIO()
        constraint.print_value(stream, 0.0, 0.0, 0.0, 300.0)
        self.assertEqual(stream.getvalue(), '\t30.000000\t300.000000')

    def test_fixed_values(self):
        self.assertEqual(create_constraint('max_300_stress').values(0.0, 0.0, 0.0, 100.0), (300.0,))
        self.assertEqual(create_constraint('fitness_fatigue_ratio').header_columns,
                         ('max_fatigue_fitness_ratio',))


if __name__ == '__main__':
    unittest.main(verbosity=2)
