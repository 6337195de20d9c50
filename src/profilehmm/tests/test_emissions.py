#!/usr/bin/env python3
"""
    Place unit tests for emissions.py
"""
########################################################################
# File: test_emissions.py
#  executable: test_emissions.py
# Purpose: test emissions
#
# History: 10/19/26 Created
########################################################################
import unittest
import io
import numpy as np
from contextlib import redirect_stderr
from scipy.stats import norm

from profilehmm.emissions import *
from profilehmm.poreModel import GaussianParameters
from profilehmm.tests.syntheticData import make_pore_model, make_events, make_read


class EmissionsTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        super(EmissionsTests, cls).setUpClass()
        cls.model = make_pore_model()
        cls.rank = cls.model.get_kmer_rank("ACG")
        cls.params = cls.model.get_scaled_parameters(cls.rank)
        cls.read = make_read(cls.model, make_events([cls.params.mean, cls.params.mean + 1.0, 75.0],
                                                    stdvs=[1.2, 1.3, 1.4]))

    def test_constants(self):
        self.assertAlmostEqual(1.0 / np.sqrt(2 * np.pi), INV_SQRT_2PI)
        self.assertAlmostEqual(-0.91893853320467267, LOG_INV_SQRT_2PI)
        self.assertAlmostEqual(np.log(1.75), LOG_EVENT_INSERT_SCALE)

    def test_log_normal_pdf(self):
        g = GaussianParameters(mean=3.0, stdv=2.0, log_stdv=np.log(2.0))
        for x in (-1.0, 3.0, 7.5):
            self.assertAlmostEqual(norm.logpdf(x, 3.0, 2.0), log_normal_pdf(x, g))
            self.assertAlmostEqual(norm.pdf(x, 3.0, 2.0), normal_pdf(x, g))

    def test_match_at_model_mean(self):
        lp = log_probability_match(self.read, self.rank, 0, 0)
        self.assertEqual(LOG_INV_SQRT_2PI - self.params.log_stdv, lp)
        self.assertAlmostEqual(LOG_INV_SQRT_2PI - np.log(self.params.stdv), lp)

    def test_match(self):
        for event_idx in range(3):
            level = self.read.get_drift_corrected_level(event_idx, 0)
            for rank in (0, self.rank, 63):
                params = self.model.get_scaled_parameters(rank)
                self.assertAlmostEqual(norm.logpdf(level, params.mean, params.stdv),
                                       log_probability_match(self.read, rank, event_idx, 0))

    def test_event_insert(self):
        level = self.read.get_drift_corrected_level(1, 0)
        expected = norm.logpdf(level, self.params.mean, self.params.stdv * 1.75)
        self.assertAlmostEqual(expected, log_probability_event_insert(self.read, self.rank, 1, 0))
        self.assertAlmostEqual(log_probability_match(self.read, self.rank, 1, 0, 1.75, np.log(1.75)),
                               log_probability_event_insert(self.read, self.rank, 1, 0))

    def test_kmer_insert_is_match(self):
        for event_idx in range(3):
            self.assertEqual(log_probability_match(self.read, self.rank, event_idx, 0),
                             log_probability_kmer_insert(self.read, self.rank, event_idx, 0))

    def test_model_stdv(self):
        sd_params = self.model.get_scaled_sd_parameters(self.rank)
        without_stdv = log_probability_match(self.read, self.rank, 2, 0)
        with_stdv = log_probability_match(self.read, self.rank, 2, 0, model_stdv=True)
        self.assertAlmostEqual(norm.logpdf(1.4, sd_params.mean, sd_params.stdv), with_stdv - without_stdv)

    def test_debug_line(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            lp = log_probability_match(self.read, self.rank, 0, 0, debug=True)
        line = stderr.getvalue().strip()
        self.assertTrue(line.startswith("[emissions:log_probability_match] Event[0]"))
        # without the spread term both densities describe the same gaussian
        expected = "{:.3f}".format(normal_pdf(self.params.mean, self.params))
        self.assertTrue(line.endswith("p: {} p_old: {}".format("{:.3f}".format(np.exp(lp)), expected)))

    def test_drift_correction(self):
        model = make_pore_model()
        model.set_scalings(drift=10.0)
        read = make_read(model, make_events([self.params.mean + 0.02, self.params.mean + 0.04],
                                            starts=[0.0, 0.004]))
        # the second event sits on the model mean once 0.004s of drift is removed
        self.assertAlmostEqual(self.params.mean, read.get_drift_corrected_level(1, 0))
        self.assertAlmostEqual(LOG_INV_SQRT_2PI - self.params.log_stdv, log_probability_match(read, self.rank, 1, 0))


if __name__ == '__main__':
    unittest.main()
