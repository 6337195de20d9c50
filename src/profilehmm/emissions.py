#!/usr/bin/env python
"""Emission distributions and related functions for the profile HMM"""
########################################################################
# File: emissions.py
#  executable: emissions.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import sys
import numpy as np

# Globals
INV_SQRT_2PI = 0.3989422804014327
LOG_INV_SQRT_2PI = float(np.log(INV_SQRT_2PI))
# an extra event attributed to a kmer is modelled with a wider gaussian
EVENT_INSERT_SCALE = 1.75
LOG_EVENT_INSERT_SCALE = float(np.log(EVENT_INSERT_SCALE))


def normal_pdf(x, g):
    """Density of x under GaussianParameters g"""
    a = (x - g.mean) / g.stdv
    return INV_SQRT_2PI / g.stdv * np.exp(-0.5 * a * a)


def log_normal_pdf(x, g):
    """Log density of x under GaussianParameters g. Uses the cached log_stdv instead of calling log"""
    a = (x - g.mean) / g.stdv
    return LOG_INV_SQRT_2PI - g.log_stdv + (-0.5 * a * a)


def log_probability_match(read, kmer_rank, event_idx, strand, state_scale=1.0, log_state_scale=0.0,
                          model_stdv=False, debug=False):
    """Log probability of an event being emitted by a kmer

    The caller passes both the scale and log(scale) for the state so nothing here calls log().

    :param read: SquiggleRead
    :param kmer_rank: pore model index of the kmer
    :param event_idx: index of the event in the strand's event table
    :param strand: 0 for template, 1 for complement
    :param state_scale: multiplier for the model stdv
    :param log_state_scale: log(state_scale)
    :param model_stdv: also score the event stdv against the model's spread gaussian
    :param debug: print the emission to stderr
    """
    pm = read.pore_model[strand]

    # event level mean
    level = read.get_drift_corrected_level(event_idx, strand)

    model = pm.get_scaled_parameters(kmer_rank)
    model = model._replace(stdv=model.stdv * state_scale, log_stdv=model.log_stdv + log_state_scale)
    lp = log_normal_pdf(level, model)

    if model_stdv:
        # event level stdv
        stdv = read.get_event_stdv(event_idx, strand)
        lp += log_normal_pdf(stdv, pm.get_scaled_sd_parameters(kmer_rank))

    if debug:
        print("[emissions:log_probability_match] Event[{}] Kmer: {} -- L:{:.1f} m: {:.1f} s: {:.1f} p: {:.3f} "
              "p_old: {:.3f}".format(event_idx, kmer_rank, level, model.mean, model.stdv, np.exp(lp),
                                     normal_pdf(level, model)), file=sys.stderr)
    return lp


def log_probability_event_insert(read, kmer_rank, event_idx, strand, model_stdv=False, debug=False):
    """Log probability of an additional event being emitted by the same kmer (event split)"""
    return log_probability_match(read, kmer_rank, event_idx, strand, EVENT_INSERT_SCALE, LOG_EVENT_INSERT_SCALE,
                                 model_stdv=model_stdv, debug=debug)


def log_probability_kmer_insert(read, kmer_rank, event_idx, strand, model_stdv=False, debug=False):
    """Log probability for the kmer insert state.

    Despite the name this is exactly an unscaled match emission, kept as its own entry point
    for callers that distinguish the states.
    """
    return log_probability_match(read, kmer_rank, event_idx, strand, model_stdv=model_stdv, debug=debug)
