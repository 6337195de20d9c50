#!/usr/bin/env python
"""Options shared by the profile HMM scoring, alignment and training calls"""
########################################################################
# File: hmmArgs.py
#  executable: hmmArgs.py
#
# History: 10/19/26 Created
########################################################################

import os
from py3helpers.utils import create_dot_dict, load_json


def create_hmm_args(model_stdv=False, debug_emission=False, debug_backtrack=False,
                    print_training_messages=False, training_edge_trim=5, worker_count=1):
    """Create options for the profile HMM.

    :param model_stdv: add the event stdv term to the match emission
    :param debug_emission: print every emission calculation to stderr
    :param debug_backtrack: print every backtrack step to stderr
    :param print_training_messages: print TRAIN_SKIP and TRAIN_EMISSION records for retained observations
    :param training_edge_trim: number of entries at each end of an alignment ignored during training
    :param worker_count: number of processes used when scoring many candidates
    """
    hmm_args = {
        "model_stdv": model_stdv,
        "debug_emission": debug_emission,
        "debug_backtrack": debug_backtrack,
        "print_training_messages": print_training_messages,
        "training_edge_trim": training_edge_trim,
        "worker_count": worker_count}
    check_hmm_args(hmm_args)
    return create_dot_dict(hmm_args)


def check_hmm_args(hmm_args):
    """Make sure the HMM options are usable"""
    assert isinstance(hmm_args["training_edge_trim"], int) and hmm_args["training_edge_trim"] >= 1, \
        "training_edge_trim must be an integer >= 1. {}".format(hmm_args["training_edge_trim"])
    assert isinstance(hmm_args["worker_count"], int) and hmm_args["worker_count"] >= 1, \
        "worker_count must be an integer >= 1. {}".format(hmm_args["worker_count"])
    return True


def load_hmm_args(config_path):
    """Load HMM options from a json config file. Missing keys keep their default values

    :param config_path: path to json config
    """
    if not os.path.exists(config_path):
        raise RuntimeError("[load_hmm_args] config file not found: {}".format(config_path))
    config = load_json(config_path)
    hmm_config = config.get("hmm_args", {})
    unknown = set(hmm_config) - set(create_hmm_args())
    if len(unknown) > 0:
        raise RuntimeError("[load_hmm_args] unknown hmm_args in {}: {}".format(config_path, sorted(unknown)))
    hmm_args = dict(create_hmm_args())
    hmm_args.update(hmm_config)
    return create_hmm_args(**hmm_args)
