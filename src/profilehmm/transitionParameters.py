#!/usr/bin/env python
"""Per read transition parameters for the profile HMM and the training data used to re-estimate them"""
########################################################################
# File: transitionParameters.py
#  executable: transitionParameters.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import sys
import numpy as np

from collections import namedtuple
from profilehmm.utils import kmer_iterator

# states as written in alignments and training data
MATCH_CHAR = 'M'
EVENT_SPLIT_CHAR = 'E'
KMER_SKIP_CHAR = 'K'
STATE_CHARS = (MATCH_CHAR, EVENT_SPLIT_CHAR, KMER_SKIP_CHAR)

# trained probabilities are kept away from 0 and 1
MIN_TRAINED_PROBABILITY = 1e-4

KmerTransitionObservation = namedtuple("KmerTransitionObservation", ["level_1", "level_2", "state"])

# log transition probabilities into a block, from the previous block (m*, k*) or the same block (e*)
BlockTransitions = namedtuple("BlockTransitions", ["lp_me", "lp_mk", "lp_mm", "lp_ee", "lp_em", "lp_kk", "lp_km"])


def state_char_to_index(state):
    """Row/column of a state in the state transition table"""
    assert state in STATE_CHARS, "Unknown state {}, must be one of {}".format(state, STATE_CHARS)
    return STATE_CHARS.index(state)


class TrainingData(object):
    """Sufficient statistics collected from alignments of one strand of one read"""

    def __init__(self):
        self.n_matches = 0
        self.n_merges = 0
        self.n_skips = 0
        self.kmer_transitions = []
        self.emissions_for_matches = []
        self.state_transitions = np.zeros((len(STATE_CHARS), len(STATE_CHARS)), dtype=np.int64)

    def add_state_transition(self, from_state, to_state):
        self.state_transitions[state_char_to_index(from_state), state_char_to_index(to_state)] += 1

    def get_state_transition(self, from_state, to_state):
        return int(self.state_transitions[state_char_to_index(from_state), state_char_to_index(to_state)])


class TransitionParameters(object):
    """Transition probabilities of the match, event split and kmer skip states for one strand.

    The kmer skip probability depends on how different the expected levels of two neighbouring
    kmers are: |level_i - level_j| is binned with width skip_bin_width.
    """

    def __init__(self, trans_m_to_e_not_k=0.15, trans_e_to_e=0.33, skip_probability=0.1, skip_bin_width=0.5,
                 n_skip_bins=30):
        assert 0 <= trans_m_to_e_not_k <= 1, "trans_m_to_e_not_k must be a probability {}".format(trans_m_to_e_not_k)
        assert 0 <= trans_e_to_e <= 1, "trans_e_to_e must be a probability {}".format(trans_e_to_e)
        assert 0 <= skip_probability <= 1, "skip_probability must be a probability {}".format(skip_probability)
        assert skip_bin_width > 0, "skip_bin_width must be positive {}".format(skip_bin_width)
        self.trans_m_to_e_not_k = trans_m_to_e_not_k
        self.trans_e_to_e = trans_e_to_e
        self.skip_bin_width = skip_bin_width
        self.skip_probabilities = np.full(n_skip_bins, skip_probability, dtype=np.float64)
        self.training_data = TrainingData()

    def get_skip_bin(self, level_1, level_2):
        bin_index = int(abs(level_1 - level_2) / self.skip_bin_width)
        return min(bin_index, len(self.skip_probabilities) - 1)

    def get_skip_probability(self, level_1, level_2):
        """Probability of skipping a kmer with expected level level_2 after a kmer with expected level level_1"""
        return float(self.skip_probabilities[self.get_skip_bin(level_1, level_2)])

    def train(self, verbose=False):
        """Re-estimate the transition parameters from the accumulated training data.

        Parameters without observations keep their current value.
        """
        td = self.training_data
        m_to_m = td.get_state_transition(MATCH_CHAR, MATCH_CHAR)
        m_to_e = td.get_state_transition(MATCH_CHAR, EVENT_SPLIT_CHAR)
        if m_to_m + m_to_e > 0:
            self.trans_m_to_e_not_k = _clamp_probability(float(m_to_e) / (m_to_m + m_to_e))

        from_e = td.state_transitions[state_char_to_index(EVENT_SPLIT_CHAR)].sum()
        if from_e > 0:
            self.trans_e_to_e = _clamp_probability(
                float(td.get_state_transition(EVENT_SPLIT_CHAR, EVENT_SPLIT_CHAR)) / from_e)

        total_observations = np.zeros(len(self.skip_probabilities))
        skip_observations = np.zeros(len(self.skip_probabilities))
        for observation in td.kmer_transitions:
            bin_index = self.get_skip_bin(observation.level_1, observation.level_2)
            total_observations[bin_index] += 1
            skip_observations[bin_index] += observation.state == KMER_SKIP_CHAR

        observed = total_observations > 0
        self.skip_probabilities[observed] = np.clip(skip_observations[observed] / total_observations[observed],
                                                    MIN_TRAINED_PROBABILITY, 1 - MIN_TRAINED_PROBABILITY)
        if verbose:
            print("[TransitionParameters:train] m_to_e_not_k: {:.4f} e_to_e: {:.4f} trained skip bins: {}/{}"
                  "".format(self.trans_m_to_e_not_k, self.trans_e_to_e, int(observed.sum()),
                            len(self.skip_probabilities)), file=sys.stderr)
        return self


def _clamp_probability(p):
    return min(max(p, MIN_TRAINED_PROBABILITY), 1 - MIN_TRAINED_PROBABILITY)


def get_rank(data, sequence, ki):
    """Pore model rank of the kmer starting at position ki of sequence, reverse complemented for rc windows"""
    pm = data.read.pore_model[data.strand]
    kmer = sequence[ki:ki + pm.k]
    assert len(kmer) == pm.k, "Kmer index {} out of range for sequence of length {}".format(ki, len(sequence))
    if data.rc:
        return pm.get_rc_kmer_rank(kmer)
    return pm.get_kmer_rank(kmer)


def get_kmer_ranks(data, sequence):
    """Ranks of every kmer of sequence"""
    pm = data.read.pore_model[data.strand]
    assert len(sequence) >= pm.k, "Sequence is shorter than the kmer length {}: {}".format(pm.k, sequence)
    rank = pm.get_rc_kmer_rank if data.rc else pm.get_kmer_rank
    return [rank(kmer) for kmer in kmer_iterator(sequence, pm.k)]


def calculate_transitions(n_kmers, sequence, data):
    """Calculate the log transition probabilities into each kmer block of a sequence

    :param n_kmers: number of kmers in the sequence
    :param sequence: candidate sequence
    :param data: HMMInputData
    :return: list of BlockTransitions, one per kmer
    """
    parameters = data.read.parameters[data.strand]
    pm = data.read.pore_model[data.strand]
    kmer_ranks = get_kmer_ranks(data, sequence)
    assert len(kmer_ranks) == n_kmers, "Need one rank per kmer: {} != {}".format(len(kmer_ranks), n_kmers)

    transitions = []
    for ki in range(n_kmers):
        # probability of skipping k_i from k_(i - 1)
        level_i = pm.get_scaled_parameters(kmer_ranks[ki]).mean
        level_prev = pm.get_scaled_parameters(kmer_ranks[ki - 1]).mean if ki > 0 else level_i
        p_skip = parameters.get_skip_probability(level_prev, level_i)

        # transitions from the match state
        p_mk = p_skip
        p_me = (1 - p_skip) * parameters.trans_m_to_e_not_k
        p_mm = max(1.0 - p_me - p_mk, 0.0)

        # transitions from event split state
        p_ee = parameters.trans_e_to_e
        p_em = 1.0 - p_ee

        # transitions from kmer skip state in previous block
        p_kk = p_skip
        p_km = 1.0 - p_kk

        with np.errstate(divide='ignore'):
            lp = np.log([p_me, p_mk, p_mm, p_ee, p_em, p_kk, p_km])
        transitions.append(BlockTransitions(*[float(x) for x in lp]))
    return transitions
