"""Static enumerations shared by schemas and provisioners."""
