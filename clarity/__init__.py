"""ClarityTracking backend: conversion event ledger and API."""

__version__ = "0.1.0"
