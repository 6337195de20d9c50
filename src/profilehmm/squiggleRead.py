#!/usr/bin/env python
"""SquiggleRead holds the event tables, pore models and transition parameters of both strands of a read"""
########################################################################
# File: squiggleRead.py
#  executable: squiggleRead.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import os
import sys
import numpy as np
import pandas as pd

from py3helpers.utils import check_numpy_table
from profilehmm.transitionParameters import TransitionParameters

TEMPLATE = 0
COMPLEMENT = 1
EVENT_TABLE_FIELDS = ('mean', 'stdv', 'start', 'length')


class SquiggleRead(object):
    """Events of a nanopore read plus everything the profile HMM needs to score them"""

    def __init__(self, read_name, template_events, template_model, complement_events=None, complement_model=None):
        self.read_name = read_name
        check_numpy_table(template_events, req_fields=EVENT_TABLE_FIELDS)
        self.events = [template_events, None]
        self.pore_model = [template_model, None]
        if complement_events is not None:
            assert complement_model is not None, "[SquiggleRead] complement events need a complement pore model"
            check_numpy_table(complement_events, req_fields=EVENT_TABLE_FIELDS)
            self.events[COMPLEMENT] = complement_events
            self.pore_model[COMPLEMENT] = complement_model
        self.parameters = [TransitionParameters(), TransitionParameters()]

    def has_strand(self, strand):
        return self.events[strand] is not None

    def get_num_events(self, strand):
        assert self.has_strand(strand), "[SquiggleRead] read {} has no strand {}".format(self.read_name, strand)
        return len(self.events[strand])

    def get_drift_corrected_level(self, event_idx, strand):
        """Event mean with the linear drift of the strand removed"""
        events = self.events[strand]
        time = events['start'][event_idx] - events['start'][0]
        return float(events['mean'][event_idx] - time * self.pore_model[strand].drift)

    def get_event_stdv(self, event_idx, strand):
        return float(self.events[strand]['stdv'][event_idx])

    def get_duration(self, event_idx, strand):
        return float(self.events[strand]['length'][event_idx])

    def get_training_data(self, strand):
        return self.parameters[strand].training_data

    def train_transitions(self, verbose=False):
        """Re-estimate the transition parameters of every strand that has events"""
        for strand in (TEMPLATE, COMPLEMENT):
            if self.has_strand(strand):
                if verbose:
                    print("[SquiggleRead:train_transitions] read {} strand {}".format(self.read_name, strand),
                          file=sys.stderr)
                self.parameters[strand].train(verbose=verbose)


def load_event_table(event_file):
    """Load a tab separated event table with at least mean, stdv, start and length columns

    :param event_file: path to event table
    :return: numpy structured array
    """
    assert os.path.exists(event_file), "[load_event_table] - didn't find event table here: {}".format(event_file)
    events = pd.read_csv(event_file, sep='\t')
    events = np.asarray(events.to_records(index=False))
    check_numpy_table(events, req_fields=EVENT_TABLE_FIELDS)
    return events


def write_event_table(events, out_file):
    """Write a numpy event table as a tab separated file"""
    check_numpy_table(events, req_fields=EVENT_TABLE_FIELDS)
    pd.DataFrame(np.asarray(events)).to_csv(out_file, sep='\t', index=False)
    return out_file
