"""
grainsigma Stages — thin orchestrators, run in order by grainsigma.run.

    empirical_sigma   read samples, validate, derive eU, estimate, write table
    plot              render value vs covariate with both error-bar sets
"""
