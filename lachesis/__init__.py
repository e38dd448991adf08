"""Lachesis: model-based prognostics which estimate the hidden state of an asset
and forecast when it will reach its end of life"""
