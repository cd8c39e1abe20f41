"""FastDFS protocol client, connection pooling and cluster management."""