from .money import CENT, ZERO, fits_money_column, to_decimal, to_money

__all__ = ["CENT", "ZERO", "fits_money_column", "to_decimal", "to_money"]
