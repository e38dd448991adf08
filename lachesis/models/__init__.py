"""Physical models which describe how the hidden state of an asset evolves and what sensors observe"""
