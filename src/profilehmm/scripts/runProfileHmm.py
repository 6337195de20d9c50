#!/usr/bin/env python
"""Score, align or train the profile HMM for a read's events against candidate sequences.

config file keys:
    pore_model: nanopolish format model for the template strand
    events: tab separated template event table (mean, stdv, start, length)
    complement_pore_model, complement_events: optional complement strand
    candidates: list of candidate sequences, the first one is used for align and train
    rc: score the reverse complement of every kmer
    output_file: optional path for the alignment table
    hmm_args: options passed to create_hmm_args
"""
########################################################################
# File: runProfileHmm.py
#  executable: runProfileHmm.py
#
# History: 10/19/26 Created
########################################################################

from __future__ import print_function
import sys
import os
from argparse import ArgumentParser
from timeit import default_timer as timer

from py3helpers.utils import create_dot_dict, load_json
from profilehmm.hmmArgs import load_hmm_args
from profilehmm.poreModel import load_pore_model
from profilehmm.squiggleRead import SquiggleRead, load_event_table, TEMPLATE, COMPLEMENT
from profilehmm.profileHmm import HMMInputData, multiprocess_score_candidates, profile_hmm_align, \
    profile_hmm_update_training, alignment_to_dataframe


def parse_args():
    parser = ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(dest="command")

    score_parser = subparsers.add_parser("score", help="forward log probability of every candidate")
    score_parser.add_argument('--config', '-c', type=str, required=True,
                              help='Path to the json config file')

    align_parser = subparsers.add_parser("align", help="Viterbi alignment of the events to the first candidate")
    align_parser.add_argument('--config', '-c', type=str, required=True,
                              help='Path to the json config file')

    train_parser = subparsers.add_parser("train", help="re-estimate transition parameters from the alignment")
    train_parser.add_argument('--config', '-c', type=str, required=True,
                              help='Path to the json config file')
    return parser.parse_args()


def load_read(config):
    """Build a SquiggleRead from the model and event paths in a config"""
    for key in ("pore_model", "events"):
        if key not in config or not os.path.exists(config[key]):
            raise RuntimeError("[load_read] config needs an existing '{}' path".format(key))
    complement_events = None
    complement_model = None
    if config.get("complement_events"):
        complement_events = load_event_table(config["complement_events"])
        complement_model = load_pore_model(config["complement_pore_model"])
    return SquiggleRead(os.path.basename(config["events"]), load_event_table(config["events"]),
                        load_pore_model(config["pore_model"]), complement_events=complement_events,
                        complement_model=complement_model)


def get_input_data(read, hmm_args, rc=False):
    return [HMMInputData(read, strand=strand, rc=rc, args=hmm_args) for strand in (TEMPLATE, COMPLEMENT)
            if read.has_strand(strand)]


def main():
    args = parse_args()
    if args.command is None:
        print("Error, try: `runProfileHmm.py score --config path/to/config.json`", file=sys.stderr)
        return 1
    if not os.path.exists(args.config):
        raise RuntimeError("{config} not found".format(config=args.config))

    start = timer()
    config = create_dot_dict(load_json(args.config))
    hmm_args = load_hmm_args(args.config)
    candidates = config.candidates
    if not candidates:
        raise RuntimeError("[runProfileHmm] config has no candidates")
    read = load_read(config)
    data_list = get_input_data(read, hmm_args, rc=bool(config.rc))

    if args.command == "score":
        for candidate, score in multiprocess_score_candidates(candidates, data_list,
                                                              worker_count=hmm_args.worker_count):
            print("{}\t{:.4f}".format(candidate, score))
    elif args.command == "align":
        for data in data_list:
            alignment = alignment_to_dataframe(profile_hmm_align(candidates[0], data))
            alignment["strand"] = data.strand
            if config.output_file:
                alignment.to_csv(config.output_file, sep='\t', index=False,
                                 mode='w' if data.strand == TEMPLATE else 'a', header=data.strand == TEMPLATE)
            else:
                print(alignment.to_csv(sep='\t', index=False))
    elif args.command == "train":
        for data in data_list:
            profile_hmm_update_training(candidates[0], data)
            training_data = read.get_training_data(data.strand)
            print("strand {}: {} matches {} merges {} skips".format(data.strand, training_data.n_matches,
                                                                   training_data.n_merges, training_data.n_skips))
        read.train_transitions(verbose=True)
        for data in data_list:
            parameters = read.parameters[data.strand]
            print("strand {}: trans_m_to_e_not_k {:.4f} trans_e_to_e {:.4f}".format(
                data.strand, parameters.trans_m_to_e_not_k, parameters.trans_e_to_e))

    stop = timer()
    print("[runProfileHmm] Running Time = {} seconds".format(stop - start), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
