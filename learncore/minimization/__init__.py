"""Line searches and unconstrained function minimizers."""
