"""Source package for the mvtb thumbnail sheet generator."""
