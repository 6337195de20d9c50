#!/usr/bin/env python
"""Profile HMM for aligning nanopore events to a candidate sequence.

Each kmer of the sequence gets a block of three states: kmer skip, event split and match.
One fill routine runs the recurrence and an output object decides whether cells are summed
(forward) or maximised with a backtrack pointer (Viterbi).
"""
########################################################################
# File: profileHmm.py
#  executable: profileHmm.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import sys
import numpy as np
import pandas as pd

from collections import namedtuple
from py3helpers.multiprocess import *
from profilehmm.emissions import log_probability_match, log_probability_event_insert
from profilehmm.hmmArgs import create_hmm_args
from profilehmm.squiggleRead import TEMPLATE
from profilehmm.transitionParameters import calculate_transitions, get_kmer_ranks, get_rank, \
    KmerTransitionObservation, MATCH_CHAR, EVENT_SPLIT_CHAR, KMER_SKIP_CHAR
from profilehmm.utils import add_logs

# states within a block, in column order
PS_KMER_SKIP = 0
PS_EVENT_SPLIT = 1
PS_MATCH = 2
PS_NUM_STATES = 3
STATE_CHARS = {PS_KMER_SKIP: KMER_SKIP_CHAR, PS_EVENT_SPLIT: EVENT_SPLIT_CHAR, PS_MATCH: MATCH_CHAR}

# leaving the last kmer into the end block is certain
LOG_END_TRANSITION = 0.0

AlignmentState = namedtuple("AlignmentState", ["event_idx", "kmer_idx", "l_posterior", "l_fm",
                                               "log_transition_probability", "state"])


class HMMInputData(object):
    """A window of events from one strand of a read

    :param read: SquiggleRead
    :param strand: 0 for template, 1 for complement
    :param event_start_idx: first event of the window
    :param event_stop_idx: last event of the window (inclusive), defaults to the last event of the strand
    :param event_stride: 1 or -1, defaults to the direction from start to stop
    :param rc: score the reverse complement of each kmer
    :param args: options from create_hmm_args
    """

    def __init__(self, read, strand=TEMPLATE, event_start_idx=0, event_stop_idx=None, event_stride=None, rc=False,
                 args=None):
        assert read.has_strand(strand), "[HMMInputData] read {} has no strand {}".format(read.read_name, strand)
        n_strand_events = read.get_num_events(strand)
        if event_stop_idx is None:
            event_stop_idx = n_strand_events - 1
        if event_stride is None:
            event_stride = 1 if event_stop_idx >= event_start_idx else -1
        assert event_stride in (1, -1), "event_stride must be 1 or -1: {}".format(event_stride)
        assert 0 <= event_start_idx < n_strand_events and 0 <= event_stop_idx < n_strand_events, \
            "Event window [{}, {}] out of range for {} events".format(event_start_idx, event_stop_idx,
                                                                   n_strand_events)
        assert (event_stop_idx - event_start_idx) * event_stride >= 0, \
            "event_stride {} does not walk from {} to {}".format(event_stride, event_start_idx, event_stop_idx)
        self.read = read
        self.strand = strand
        self.event_start_idx = event_start_idx
        self.event_stop_idx = event_stop_idx
        self.event_stride = event_stride
        self.rc = rc
        self.args = args if args is not None else create_hmm_args()

    @property
    def n_events(self):
        return abs(self.event_stop_idx - self.event_start_idx) + 1

    def get_event_idx(self, row):
        """Event index of a matrix row. Row 0 is before the first event"""
        return self.event_start_idx + (row - 1) * self.event_stride


def get_num_kmers(sequence, data):
    k = data.read.pore_model[data.strand].k
    assert len(sequence) >= k, "Sequence is shorter than the kmer length {}: {}".format(k, sequence)
    return len(sequence) - k + 1


def allocate_matrix(n_rows, n_cols, dtype=np.float64, fill=-np.inf):
    return np.full((n_rows, n_cols), fill, dtype=dtype)


def profile_hmm_forward_initialize(fm):
    """Only the match state of the start block on row 0 is reachable"""
    fm[0, :] = -np.inf
    fm[1:, 0:PS_NUM_STATES] = -np.inf
    fm[0, PS_MATCH] = 0.0
    return fm


class ProfileHmmForwardOutput(object):
    """Sums the incoming paths of each cell"""

    def __init__(self, fm):
        self.fm = fm
        self.end = -np.inf

    def update_cell(self, row, col, m, e, k, lp_emission):
        self.fm[row, col] = add_logs(add_logs(m, e), k) + lp_emission

    def update_end(self, s, row, col):
        self.fm[row, col] = s
        self.end = s

    def get(self, row, col):
        return float(self.fm[row, col])

    def get_end(self):
        return self.end

    def get_num_rows(self):
        return self.fm.shape[0]

    def get_num_columns(self):
        return self.fm.shape[1]


class ProfileHmmViterbiOutput(object):
    """Keeps the best incoming path of each cell and remembers which state it came from"""

    def __init__(self, vm, bm):
        assert vm.shape == bm.shape, "Viterbi and backtrack matrices differ: {} {}".format(vm.shape, bm.shape)
        self.vm = vm
        self.bm = bm
        self.end = -np.inf

    def update_cell(self, row, col, m, e, k, lp_emission):
        # ties go to the later state
        max_score = m
        from_state = PS_MATCH

        max_score = e if e > max_score else max_score
        from_state = PS_EVENT_SPLIT if max_score == e else from_state

        max_score = k if k > max_score else max_score
        from_state = PS_KMER_SKIP if max_score == k else from_state

        self.vm[row, col] = max_score + lp_emission
        self.bm[row, col] = from_state

    def update_end(self, s, row, col):
        self.vm[row, col] = s
        self.bm[row, col] = PS_MATCH
        self.end = s

    def get(self, row, col):
        return float(self.vm[row, col])

    def get_end(self):
        return self.end

    def get_num_rows(self):
        return self.vm.shape[0]

    def get_num_columns(self):
        return self.vm.shape[1]


def profile_hmm_terminate(output, last_row, n_kmers):
    """Move from the match state of the last kmer into the end block"""
    last_match = PS_NUM_STATES * n_kmers + PS_MATCH
    end_match = PS_NUM_STATES * (n_kmers + 1) + PS_MATCH
    score = output.get(last_row, last_match) + LOG_END_TRANSITION
    output.update_end(score, last_row, end_match)
    return score


def profile_hmm_fill_generic(sequence, data, output):
    """Fill a forward or Viterbi matrix for sequence against the events of data

    :param sequence: candidate sequence
    :param data: HMMInputData
    :param output: ProfileHmmForwardOutput or ProfileHmmViterbiOutput with an initialized matrix
    :return: log probability of the events given the sequence (summed or best path)
    """
    read = data.read
    strand = data.strand
    model_stdv = data.args.model_stdv
    debug = data.args.debug_emission

    n_kmers = get_num_kmers(sequence, data)
    n_rows = data.n_events + 1
    assert output.get_num_rows() == n_rows, \
        "Matrix has {} rows, expected {}".format(output.get_num_rows(), n_rows)
    assert output.get_num_columns() == PS_NUM_STATES * (n_kmers + 2), \
        "Matrix has {} columns, expected {}".format(output.get_num_columns(), PS_NUM_STATES * (n_kmers + 2))

    kmer_ranks = get_kmer_ranks(data, sequence)
    transitions = calculate_transitions(n_kmers, sequence, data)

    for row in range(1, n_rows):
        event_idx = data.get_event_idx(row)
        for block in range(1, n_kmers + 1):
            kmer_idx = block - 1
            bt = transitions[kmer_idx]
            rank = kmer_ranks[kmer_idx]

            prev_block_offset = PS_NUM_STATES * (block - 1)
            curr_block_offset = PS_NUM_STATES * block

            lp_emission_m = log_probability_match(read, rank, event_idx, strand, model_stdv=model_stdv, debug=debug)
            lp_emission_e = log_probability_event_insert(read, rank, event_idx, strand, model_stdv=model_stdv,
                                                         debug=debug)

            # state PS_MATCH
            m_m = bt.lp_mm + output.get(row - 1, prev_block_offset + PS_MATCH)
            m_e = bt.lp_em + output.get(row - 1, prev_block_offset + PS_EVENT_SPLIT)
            m_k = bt.lp_km + output.get(row - 1, prev_block_offset + PS_KMER_SKIP)
            output.update_cell(row, curr_block_offset + PS_MATCH, m_m, m_e, m_k, lp_emission_m)

            # state PS_EVENT_SPLIT
            e_m = bt.lp_me + output.get(row - 1, curr_block_offset + PS_MATCH)
            e_e = bt.lp_ee + output.get(row - 1, curr_block_offset + PS_EVENT_SPLIT)
            output.update_cell(row, curr_block_offset + PS_EVENT_SPLIT, e_m, e_e, -np.inf, lp_emission_e)

            # state PS_KMER_SKIP, no event is consumed
            k_m = bt.lp_mk + output.get(row, prev_block_offset + PS_MATCH)
            k_k = bt.lp_kk + output.get(row, prev_block_offset + PS_KMER_SKIP)
            output.update_cell(row, curr_block_offset + PS_KMER_SKIP, k_m, -np.inf, k_k, 0.0)

    return profile_hmm_terminate(output, n_rows - 1, n_kmers)


def profile_hmm_score(sequence, data):
    """Forward log probability of the events of data given sequence"""
    n_kmers = get_num_kmers(sequence, data)
    fm = allocate_matrix(data.n_events + 1, PS_NUM_STATES * (n_kmers + 2))
    profile_hmm_forward_initialize(fm)
    output = ProfileHmmForwardOutput(fm)
    return profile_hmm_fill_generic(sequence, data, output)


def profile_hmm_score_set(sequence, data_list):
    """Sum of the forward log probabilities of sequence over several event windows"""
    score = 0.0
    for data in data_list:
        score += profile_hmm_score(sequence, data)
    return score


def profile_hmm_align(sequence, data):
    """Viterbi alignment of the events of data to the kmers of sequence

    :param sequence: candidate sequence
    :param data: HMMInputData with at least two events
    :return: list of AlignmentState in event order
    """
    n_events = data.n_events
    assert n_events >= 2, "Need at least two events to align, got {}".format(n_events)
    n_kmers = get_num_kmers(sequence, data)
    n_rows = n_events + 1
    n_cols = PS_NUM_STATES * (n_kmers + 2)

    vm = allocate_matrix(n_rows, n_cols)
    bm = allocate_matrix(n_rows, n_cols, dtype=np.uint8, fill=0)
    profile_hmm_forward_initialize(vm)
    output = ProfileHmmViterbiOutput(vm, bm)
    profile_hmm_fill_generic(sequence, data, output)

    return profile_hmm_backtrack(vm, bm, n_kmers, data)


def profile_hmm_backtrack(vm, bm, n_kmers, data):
    """Walk the backtrack matrix from the match state of the last kmer back to the start"""
    alignment = []
    row = vm.shape[0] - 1
    col = PS_NUM_STATES * n_kmers + PS_MATCH
    while row > 0:
        event_idx = data.get_event_idx(row)
        block = col // PS_NUM_STATES
        kmer_idx = block - 1
        state = col % PS_NUM_STATES
        assert 0 <= kmer_idx < n_kmers, "Backtrack left the sequence at row {} column {}".format(row, col)
        assert vm[row, col] != -np.inf, "Backtrack reached an impossible cell at row {} column {}".format(row, col)

        alignment.append(AlignmentState(event_idx=event_idx, kmer_idx=kmer_idx, l_posterior=-np.inf,
                                        l_fm=float(vm[row, col]), log_transition_probability=-np.inf,
                                        state=STATE_CHARS[state]))
        from_state = int(bm[row, col])
        if data.args.debug_backtrack:
            print("[profileHmm:profile_hmm_backtrack] Backtrack [{} {}] k: {} s: {:.2f} curr s: {} prev s: {}"
                  "".format(row, col, kmer_idx, vm[row, col], STATE_CHARS[state], STATE_CHARS[from_state]),
                  file=sys.stderr)

        if state == PS_MATCH:
            row -= 1
            kmer_idx -= 1
        elif state == PS_EVENT_SPLIT:
            row -= 1
        else:
            kmer_idx -= 1
        col = PS_NUM_STATES * (kmer_idx + 1) + from_state

    alignment.reverse()
    return alignment


def update_training_with_alignment(sequence, data, alignment):
    """Add the observations of an alignment to the training data of the read strand.

    Entries within training_edge_trim of either end of the alignment are only counted, not recorded.
    """
    pm = data.read.pore_model[data.strand]
    training_data = data.read.parameters[data.strand].training_data
    n_kmers = get_num_kmers(sequence, data)
    trim = data.args.training_edge_trim
    print_messages = data.args.print_training_messages

    prev_s = MATCH_CHAR
    for pi, astate in enumerate(alignment):
        ei = astate.event_idx
        ki = astate.kmer_idx
        s = astate.state

        if ki >= n_kmers:
            print("[profileHmm:update_training_with_alignment] Error: kmer index is greater than n_kmers\n"
                  "[profileHmm:update_training_with_alignment] path: {}".format(
                      " ".join("{}{}".format(a.state, a.kmer_idx) for a in alignment)), file=sys.stderr)
            assert ki < n_kmers, "kmer index {} out of range for {} kmers".format(ki, n_kmers)

        if trim <= pi < len(alignment) - trim:
            if s != EVENT_SPLIT_CHAR:
                transition_kmer_from = alignment[pi - 1].kmer_idx
                transition_kmer_to = ki
                # only the first of several skipped kmers is recorded
                if s == KMER_SKIP_CHAR:
                    transition_kmer_to = transition_kmer_from + 1

                level_1 = pm.get_scaled_parameters(get_rank(data, sequence, transition_kmer_from))
                level_2 = pm.get_scaled_parameters(get_rank(data, sequence, transition_kmer_to))
                training_data.kmer_transitions.append(KmerTransitionObservation(level_1.mean, level_2.mean, s))
                if print_messages:
                    print("TRAIN_SKIP\t{}\t{:.3f}\t{:.3f}\t{}".format(data.strand, level_1.mean, level_2.mean, s),
                          file=sys.stderr)

            training_data.add_state_transition(prev_s, s)
            prev_s = s

            if s == MATCH_CHAR:
                level = data.read.get_drift_corrected_level(ei, data.strand)
                model = pm.get_scaled_parameters(get_rank(data, sequence, ki))
                norm_level = (level - model.mean) / model.stdv
                training_data.emissions_for_matches.append(norm_level)
                if print_messages:
                    print("TRAIN_EMISSION\t{}\t{}\t{:.3f}\t{:.3f}\t{:.3f}\t{:.3f}\t{:.3f}\t{:.3f}\t{}".format(
                        data.strand, ei, level, data.read.get_event_stdv(ei, data.strand), model.mean,
                        model.stdv, norm_level, data.read.get_duration(ei, data.strand), s), file=sys.stderr)

        training_data.n_matches += s == MATCH_CHAR
        training_data.n_merges += s == EVENT_SPLIT_CHAR
        training_data.n_skips += s == KMER_SKIP_CHAR

    return training_data


def profile_hmm_update_training(sequence, data):
    """Align the events of data to sequence and add the alignment to the strand's training data"""
    alignment = profile_hmm_align(sequence, data)
    update_training_with_alignment(sequence, data, alignment)
    return alignment


def alignment_to_dataframe(alignment):
    """Alignment as a pandas DataFrame with one row per AlignmentState"""
    return pd.DataFrame.from_records(alignment, columns=AlignmentState._fields)


def score_candidate(candidate, data_list):
    """Score one candidate against a set of event windows"""
    return candidate, profile_hmm_score_set(candidate, data_list)


def multiprocess_score_candidates(candidates, data_list, worker_count=1):
    """Score candidate sequences in parallel

    :param candidates: list of candidate sequences
    :param data_list: list of HMMInputData every candidate is scored against
    :param worker_count: number of processes
    :return: list of (candidate, score) in the order of candidates
    """
    if worker_count == 1:
        return [score_candidate(candidate, data_list) for candidate in candidates]
    service = BasicService(score_candidate, service_name="multiprocess_score_candidates")
    total, failure, messages, output = run_service(service.run, candidates, {"data_list": data_list},
                                                   ["candidate"], worker_count=worker_count)
    if failure > 0:
        raise RuntimeError("[multiprocess_score_candidates] {} of {} candidates failed: {}".format(failure, total,
                                                                                                 messages))
    scores = dict(output)
    return [(candidate, scores[candidate]) for candidate in candidates]
