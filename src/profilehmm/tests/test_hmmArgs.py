#!/usr/bin/env python3
"""
    Place unit tests for hmmArgs.py
"""
########################################################################
# File: test_hmmArgs.py
#  executable: test_hmmArgs.py
# Purpose: test hmmArgs
#
# History: 10/19/26 Created
########################################################################
import unittest
import os
import json
import tempfile

from profilehmm.hmmArgs import *


class HmmArgsTests(unittest.TestCase):

    def write_config(self, tempdir, config):
        config_path = os.path.join(tempdir, "config.json")
        with open(config_path, 'w') as fh:
            json.dump(config, fh)
        return config_path

    def test_create_hmm_args(self):
        args = create_hmm_args()
        self.assertFalse(args.model_stdv)
        self.assertFalse(args.debug_emission)
        self.assertFalse(args.debug_backtrack)
        self.assertFalse(args.print_training_messages)
        self.assertEqual(5, args.training_edge_trim)
        self.assertEqual(1, args.worker_count)
        self.assertTrue(create_hmm_args(model_stdv=True).model_stdv)
        self.assertRaises(AssertionError, create_hmm_args, training_edge_trim=0)
        self.assertRaises(AssertionError, create_hmm_args, worker_count=1.5)

    def test_load_hmm_args(self):
        with tempfile.TemporaryDirectory() as tempdir:
            config_path = self.write_config(tempdir, {"hmm_args": {"model_stdv": True, "worker_count": 4},
                                                      "candidates": ["ACGT"]})
            args = load_hmm_args(config_path)
            self.assertTrue(args.model_stdv)
            self.assertEqual(4, args.worker_count)
            self.assertEqual(5, args.training_edge_trim)

            config_path = self.write_config(tempdir, {"candidates": ["ACGT"]})
            self.assertEqual(dict(create_hmm_args()), dict(load_hmm_args(config_path)))

            config_path = self.write_config(tempdir, {"hmm_args": {"not_an_option": 1}})
            self.assertRaises(RuntimeError, load_hmm_args, config_path)

            config_path = self.write_config(tempdir, {"hmm_args": {"training_edge_trim": -1}})
            self.assertRaises(AssertionError, load_hmm_args, config_path)

            self.assertRaises(RuntimeError, load_hmm_args, os.path.join(tempdir, "missing.json"))


if __name__ == '__main__':
    unittest.main()
