'''Pluggable building blocks of the tabulators.'''
