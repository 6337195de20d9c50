#!/usr/bin/env python3
"""
    Place unit tests for poreModel.py
"""
########################################################################
# File: test_poreModel.py
#  executable: test_poreModel.py
# Purpose: test poreModel
#
# History: 10/19/26 Created
########################################################################
import unittest
import os
import tempfile
import numpy as np

from profilehmm.poreModel import *
from profilehmm.tests.syntheticData import make_pore_model


class PoreModelTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        super(PoreModelTests, cls).setUpClass()
        cls.model = make_pore_model()

    def test_init(self):
        self.assertEqual(3, self.model.k)
        self.assertEqual("ACGT", self.model.alphabet)
        self.assertEqual(64, self.model.num_kmers)
        self.assertEqual(64, len(self.model.scaled_params))
        self.assertRaises(AssertionError, PoreModel, ["AA", "AC"], [1, 2], [1, 1])
        self.assertRaises(AssertionError, PoreModel, ["A", "C"], [1, 2], [1, 0])

    def test_kmer_rank(self):
        for index, kmer in enumerate(self.model.sorted_kmer_tuple):
            self.assertEqual(index, self.model.get_kmer_rank(kmer))
            self.assertEqual(kmer, self.model.index_to_kmer(index))
        self.assertEqual(self.model.get_kmer_rank("TTT"), self.model.get_rc_kmer_rank("AAA"))
        self.assertRaises(AssertionError, self.model.get_kmer_rank, "AAAA")
        self.assertRaises(AssertionError, self.model.get_kmer_rank, "ANA")

    def test_kmers_stored_by_rank(self):
        model = PoreModel(["C", "A", "T", "G"], [2.0, 1.0, 4.0, 3.0], [0.1, 0.2, 0.3, 0.4])
        np.testing.assert_array_equal([1.0, 2.0, 3.0, 4.0], model.level_means)
        np.testing.assert_array_equal([0.2, 0.1, 0.4, 0.3], model.level_stdvs)

    def test_set_scalings(self):
        model = make_pore_model()
        model.set_scalings(shift=10.0, scale=2.0, var=1.5, scale_sd=1.2, var_sd=0.8)
        for rank in range(model.num_kmers):
            params = model.get_scaled_parameters(rank)
            self.assertAlmostEqual(model.level_means[rank] * 2.0 + 10.0, params.mean)
            self.assertAlmostEqual(model.level_stdvs[rank] * 1.5, params.stdv)
            self.assertAlmostEqual(np.log(params.stdv), params.log_stdv)
            sd_params = model.get_scaled_sd_parameters(rank)
            self.assertAlmostEqual(model.sd_means[rank] * 1.2, sd_params.mean)
            self.assertAlmostEqual(model.sd_stdvs[rank] * np.sqrt(1.2 ** 3 / 0.8), sd_params.stdv)
            self.assertAlmostEqual(np.log(sd_params.stdv), sd_params.log_stdv)
        self.assertRaises(AssertionError, model.set_scalings, var=0)

    def test_load_and_write_pore_model(self):
        with tempfile.TemporaryDirectory() as tempdir:
            model_path = os.path.join(tempdir, "test.model")
            write_pore_model(self.model, model_path)
            model = load_pore_model(model_path)
            self.assertEqual("synthetic", model.name)
            self.assertEqual(self.model.k, model.k)
            np.testing.assert_array_almost_equal(self.model.level_means, model.level_means)
            np.testing.assert_array_almost_equal(self.model.level_stdvs, model.level_stdvs)
            np.testing.assert_array_almost_equal(self.model.sd_means, model.sd_means)
            np.testing.assert_array_almost_equal(self.model.sd_stdvs, model.sd_stdvs)
            self.assertRaises(AssertionError, load_pore_model, os.path.join(tempdir, "missing.model"))

    def test_load_nanopolish_format(self):
        with tempfile.TemporaryDirectory() as tempdir:
            model_path = os.path.join(tempdir, "nanopolish.model")
            with open(model_path, 'w') as fh:
                fh.write("#ont_model_name\tr9_test_1mer\n#kit\tr9.4_450bps\n#strand\ttemplate\n#k\t1\n")
                fh.write("kmer\tlevel_mean\tlevel_stdv\tsd_mean\tsd_stdv\tweight\n")
                fh.write("A\t80.1\t1.1\t1.5\t0.4\t100.0\n")
                fh.write("C\t90.2\t1.2\t1.6\t0.5\t100.0\n")
                fh.write("G\t70.3\t1.3\t1.7\t0.6\t100.0\n")
                fh.write("T\t60.4\t1.4\t1.8\t0.7\t100.0\n")
            model = load_pore_model(model_path)
            self.assertEqual("r9_test_1mer", model.name)
            self.assertEqual(1, model.k)
            self.assertAlmostEqual(70.3, model.get_scaled_parameters(model.get_kmer_rank("G")).mean)
            self.assertAlmostEqual(0.7, model.sd_stdvs[model.get_kmer_rank("T")])


if __name__ == '__main__':
    unittest.main()
