"""
CropMarket: a farm-to-consumer marketplace backend.

Farmers list produce, buyers browse (optionally by distance), fill a cart
and check out, farmers work their order queue, and a farming assistant
answers questions.
"""

__version__ = "1.0.0"
