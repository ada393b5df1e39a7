"""
Utils package initialization
"""

from .shared_functions import setup_logging, save_results, save_plot
