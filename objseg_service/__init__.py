"""
Unsupervised object segmentation service package.

Exposes the deterministic k-means/Otsu/morphology extraction pipeline, an
OpenCV-backed alternative extractor, result storage and the FastAPI
application.
"""
