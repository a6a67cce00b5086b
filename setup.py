#!/usr/bin/env python
#-*- coding:utf-8 -*-

#############################################
# File Name: setup.py
# Author: Songyan Zhu
# Mail: zhusy93@gmail.com
# Created Time:  2018-10-23 13:28:34
#############################################


from setuptools import setup, find_packages

setup(
	name = "leafoptimizer",
	version = "0.0.1",
	keywords = ("Ecophysiology, leaf traits, photosynthesis, energy balance, optimization"),
	description = "Optimize leaf traits to different environments in silico",
	long_description = "Optimize leaf traits (stomatal conductance, leaf size, stomatal ratio) "
		"by coupling a leaf energy balance with C3 photosynthesis.",
	license = "MIT Licence",

	url="https://github.com/soonyenju/leafoptimizer",
	author = "Songyan Zhu",
	author_email = "zhusy93@gmail.com",

	packages = find_packages(exclude=["tests", "tests.*"]),
	include_package_data = True,
	platforms = "any",
	python_requires = ">=3.8",
	install_requires=[
		"numpy",
		"scipy",
		"pandas",
		"pint",
	],
	extras_require={
		"test": ["pytest"],
	}
)
