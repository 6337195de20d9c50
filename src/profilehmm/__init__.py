"""Profile HMM scoring, alignment and training of nanopore events against candidate sequences"""
